"""
Role-based access control for organization members.

The matrix below is the single source of truth for "may role R do P".
It is business policy: change it by editing the table, never by deriving
it at runtime. Every mutating action in the app asks this module (through
finitax.auth.guard) before touching the database.
"""
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, NamedTuple, Tuple, Union

class Role(str, Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"
    ACCOUNTANT = "ACCOUNTANT"

class PermissionMeta(NamedTuple):
    label: str
    category: str

# Permission catalogue: "<resource>.<action>" -> display metadata.
PERMISSIONS: Mapping[str, PermissionMeta] = MappingProxyType({
    "dashboard.view": PermissionMeta("Ver panel principal", "Panel"),

    "organization.view": PermissionMeta("Ver empresa", "Empresa"),
    "organization.edit": PermissionMeta("Editar empresa", "Empresa"),
    "organization.delete": PermissionMeta("Eliminar empresa", "Empresa"),

    "members.view": PermissionMeta("Ver miembros", "Miembros"),
    "members.invite": PermissionMeta("Invitar miembros", "Miembros"),
    "members.remove": PermissionMeta("Remover miembros", "Miembros"),
    "members.change_role": PermissionMeta("Cambiar roles", "Miembros"),

    "accounts.view": PermissionMeta("Ver catálogo de cuentas", "Contabilidad"),
    "accounts.create": PermissionMeta("Crear cuentas", "Contabilidad"),
    "accounts.edit": PermissionMeta("Editar cuentas", "Contabilidad"),
    "accounts.delete": PermissionMeta("Eliminar cuentas", "Contabilidad"),

    "ledger.view": PermissionMeta("Ver libro diario", "Contabilidad"),
    "ledger.create": PermissionMeta("Crear partidas", "Contabilidad"),
    "ledger.edit": PermissionMeta("Editar partidas", "Contabilidad"),
    "ledger.post": PermissionMeta("Contabilizar partidas", "Contabilidad"),
    "ledger.delete": PermissionMeta("Eliminar partidas", "Contabilidad"),

    "inventory.view": PermissionMeta("Ver inventario", "Inventario"),
    "inventory.create": PermissionMeta("Crear productos", "Inventario"),
    "inventory.edit": PermissionMeta("Editar productos", "Inventario"),
    "inventory.adjust": PermissionMeta("Ajustar existencias", "Inventario"),
    "inventory.delete": PermissionMeta("Eliminar productos", "Inventario"),

    "invoices.view": PermissionMeta("Ver facturas", "Facturación"),
    "invoices.create": PermissionMeta("Crear facturas", "Facturación"),
    "invoices.edit": PermissionMeta("Editar facturas", "Facturación"),
    "invoices.void": PermissionMeta("Anular facturas", "Facturación"),
    "invoices.transmit": PermissionMeta("Transmitir DTE", "Facturación"),

    "expenses.view": PermissionMeta("Ver gastos", "Gastos"),
    "expenses.create": PermissionMeta("Registrar gastos", "Gastos"),
    "expenses.approve": PermissionMeta("Aprobar gastos", "Gastos"),
    "expenses.delete": PermissionMeta("Eliminar gastos", "Gastos"),

    "taxes.view": PermissionMeta("Ver declaraciones", "Impuestos"),
    "taxes.file": PermissionMeta("Presentar declaraciones", "Impuestos"),
    "taxes.configure": PermissionMeta("Configurar impuestos", "Impuestos"),

    "payroll.view": PermissionMeta("Ver planillas", "Planillas"),
    "payroll.run": PermissionMeta("Generar planillas", "Planillas"),
    "payroll.approve": PermissionMeta("Aprobar planillas", "Planillas"),
    "payroll.manage_employees": PermissionMeta("Gestionar empleados", "Planillas"),

    "reports.view": PermissionMeta("Ver reportes", "Reportes"),
    "reports.export": PermissionMeta("Exportar reportes", "Reportes"),

    "audit.view": PermissionMeta("Ver bitácora", "Auditoría"),

    "assistant.view": PermissionMeta("Ver asistente", "Asistente IA"),
    "assistant.use": PermissionMeta("Usar asistente", "Asistente IA"),

    "contacts.view": PermissionMeta("Ver contactos", "Contactos"),
    "contacts.create": PermissionMeta("Crear contactos", "Contactos"),
    "contacts.edit": PermissionMeta("Editar contactos", "Contactos"),
    "contacts.delete": PermissionMeta("Eliminar contactos", "Contactos"),

    "recurring.view": PermissionMeta("Ver recurrentes", "Recurrentes"),
    "recurring.create": PermissionMeta("Crear recurrentes", "Recurrentes"),
    "recurring.edit": PermissionMeta("Editar recurrentes", "Recurrentes"),
    "recurring.delete": PermissionMeta("Eliminar recurrentes", "Recurrentes"),

    "currencies.view": PermissionMeta("Ver monedas", "Monedas"),
    "currencies.manage": PermissionMeta("Gestionar monedas", "Monedas"),

    "banking.view": PermissionMeta("Ver bancos", "Bancos"),
    "banking.manage": PermissionMeta("Gestionar cuentas bancarias", "Bancos"),
    "banking.reconcile": PermissionMeta("Conciliar", "Bancos"),

    "budgets.view": PermissionMeta("Ver presupuestos", "Presupuestos"),
    "budgets.create": PermissionMeta("Crear presupuestos", "Presupuestos"),
    "budgets.edit": PermissionMeta("Editar presupuestos", "Presupuestos"),
    "budgets.delete": PermissionMeta("Eliminar presupuestos", "Presupuestos"),

    "notifications.view": PermissionMeta("Ver notificaciones", "Notificaciones"),

    "settings.profile": PermissionMeta("Perfil", "Configuración"),
    "settings.organization": PermissionMeta("Configurar empresa", "Configuración"),
    "settings.members": PermissionMeta("Configurar miembros", "Configuración"),
    "settings.security": PermissionMeta("Seguridad", "Configuración"),
})

_ACCOUNTANT = frozenset({
    "dashboard.view",
    "organization.view",
    "accounts.view", "accounts.create", "accounts.edit",
    "ledger.view", "ledger.create", "ledger.edit", "ledger.post",
    "inventory.view",
    "invoices.view", "invoices.transmit",
    "expenses.view", "expenses.create", "expenses.approve",
    "taxes.view", "taxes.file",
    "reports.view", "reports.export",
    "assistant.view", "assistant.use",
    "contacts.view",
    "recurring.view",
    "currencies.view",
    "banking.view", "banking.reconcile",
    "budgets.view", "budgets.create", "budgets.edit",
    "notifications.view",
    "settings.profile", "settings.security",
})

_EMPLOYEE = frozenset({
    "dashboard.view",
    "organization.view",
    "inventory.view", "inventory.create", "inventory.edit", "inventory.adjust",
    "invoices.view", "invoices.create", "invoices.edit",
    "expenses.view", "expenses.create",
    "assistant.view", "assistant.use",
    "contacts.view", "contacts.create", "contacts.edit",
    "recurring.view", "recurring.create", "recurring.edit",
    "notifications.view",
    "settings.profile", "settings.security",
})

ROLE_PERMISSIONS: Mapping[Role, FrozenSet[str]] = MappingProxyType({
    Role.ADMIN: frozenset(PERMISSIONS),
    Role.ACCOUNTANT: _ACCOUNTANT,
    Role.EMPLOYEE: _EMPLOYEE,
})

def _check_matrix():
    missing = [r.value for r in Role if r not in ROLE_PERMISSIONS]
    if missing:
        raise RuntimeError(f"roles without a permission set: {missing}")
    for role, granted in ROLE_PERMISSIONS.items():
        unknown = sorted(granted.difference(PERMISSIONS))
        if unknown:
            raise RuntimeError(f"{role.value} grants unknown permissions: {unknown}")

_check_matrix()

def permissions_for(role) -> FrozenSet[str]:
    """Permission set of `role`; empty for anything that is not a known role."""
    try:
        return ROLE_PERMISSIONS.get(role, frozenset())
    except TypeError:
        # unhashable role value
        return frozenset()

def has_permission(role, permission: str) -> bool:
    try:
        return permission in permissions_for(role)
    except TypeError:
        return False

def _keys(permissions):
    # a lone key, not its characters
    return (permissions,) if isinstance(permissions, str) else permissions

def has_any_permission(role, permissions: Union[str, Iterable[str]]) -> bool:
    return any(has_permission(role, p) for p in _keys(permissions))

def has_all_permissions(role, permissions: Union[str, Iterable[str]]) -> bool:
    # Empty input is vacuously true.
    return all(has_permission(role, p) for p in _keys(permissions))

def roles_with(permission: str) -> Tuple[Role, ...]:
    return tuple(r for r in Role if has_permission(r, permission))

# Dashboard route -> permission needed to open it.
ROUTE_PERMISSIONS: Mapping[str, str] = MappingProxyType({
    "/dashboard": "dashboard.view",
    "/dashboard/accounts": "accounts.view",
    "/dashboard/ledger": "ledger.view",
    "/dashboard/inventory": "inventory.view",
    "/dashboard/invoices": "invoices.view",
    "/dashboard/expenses": "expenses.view",
    "/dashboard/taxes": "taxes.view",
    "/dashboard/payroll": "payroll.view",
    "/dashboard/reports": "reports.view",
    "/dashboard/audit": "audit.view",
    "/dashboard/contacts": "contacts.view",
    "/dashboard/recurring": "recurring.view",
    "/dashboard/currencies": "currencies.view",
    "/dashboard/banking": "banking.view",
    "/dashboard/budgets": "budgets.view",
    "/dashboard/notifications": "notifications.view",
    "/dashboard/assistant": "assistant.view",
    "/dashboard/settings": "settings.profile",
})

class RoleMeta(NamedTuple):
    label: str
    description: str

ROLE_META: Mapping[Role, RoleMeta] = MappingProxyType({
    Role.ADMIN: RoleMeta("Administrador", "Acceso completo a todas las funciones del sistema"),
    Role.EMPLOYEE: RoleMeta("Empleado", "Facturación, inventario y gastos"),
    Role.ACCOUNTANT: RoleMeta("Contador", "Contabilidad, impuestos y reportes financieros"),
})
