from typing import Dict, List, NamedTuple

from finitax.auth.permissions import ROLE_META, ROUTE_PERMISSIONS, has_permission

class Page(NamedTuple):
    route: str
    label: str
    permission: str

# Sidebar order
PAGE_LABELS = {
    "/dashboard": "Panel",
    "/dashboard/accounts": "Catálogo de cuentas",
    "/dashboard/ledger": "Libro diario",
    "/dashboard/inventory": "Inventario",
    "/dashboard/invoices": "Facturación DTE",
    "/dashboard/expenses": "Gastos",
    "/dashboard/contacts": "Contactos",
    "/dashboard/recurring": "Recurrentes",
    "/dashboard/banking": "Bancos",
    "/dashboard/currencies": "Monedas",
    "/dashboard/budgets": "Presupuestos",
    "/dashboard/taxes": "Impuestos",
    "/dashboard/payroll": "Planillas",
    "/dashboard/reports": "Reportes",
    "/dashboard/audit": "Bitácora",
    "/dashboard/notifications": "Notificaciones",
    "/dashboard/assistant": "Asistente IA",
    "/dashboard/settings": "Configuración",
}

def visible_pages(role) -> List[Page]:
    """Pages the role may open, in sidebar order. Unknown roles get none."""
    return [
        Page(route, label, ROUTE_PERMISSIONS[route])
        for route, label in PAGE_LABELS.items()
        if has_permission(role, ROUTE_PERMISSIONS[route])
    ]

def can_open(role, route: str) -> bool:
    permission = ROUTE_PERMISSIONS.get(route)
    return permission is not None and has_permission(role, permission)

def role_label(role) -> str:
    meta = ROLE_META.get(role) if isinstance(role, str) else None
    return meta.label if meta else "Rol desconocido"

def organization_options(memberships) -> Dict[str, object]:
    """Memberships keyed by organization id; names are not unique."""
    return {m.organization_id: m for m in memberships}
