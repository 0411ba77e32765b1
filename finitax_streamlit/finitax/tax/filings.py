"""
Helpers for the monthly Salvadoran tax returns.

F-07: IVA (VAT) return. F-11: pago a cuenta plus income tax withheld.
F-14: annual income tax return (metadata only here).
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, NamedTuple, Tuple

from finitax.core.money import ZERO, round_money, to_decimal

IVA_RATE = Decimal("0.13")
PAGO_A_CUENTA_RATE = Decimal("0.0175")  # monthly advance on income tax

class TaxFormType(str, Enum):
    F07 = "F-07"
    F11 = "F-11"
    F14 = "F-14"

class TaxFilingStatus(str, Enum):
    DRAFT = "DRAFT"
    CALCULATED = "CALCULATED"
    FILED = "FILED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

class TaxFormMeta(NamedTuple):
    label: str
    full_name: str
    frequency: str

TAX_FORM_META = {
    TaxFormType.F07: TaxFormMeta("F-07", "Declaración Mensual de IVA", "Mensual"),
    TaxFormType.F11: TaxFormMeta("F-11", "Pago a Cuenta e Impuesto Retenido Renta", "Mensual"),
    TaxFormType.F14: TaxFormMeta("F-14", "Declaración de Impuesto sobre la Renta", "Anual"),
}

TAX_FILING_STATUS_LABELS = {
    TaxFilingStatus.DRAFT: "Borrador",
    TaxFilingStatus.CALCULATED: "Calculada",
    TaxFilingStatus.FILED: "Presentada",
    TaxFilingStatus.ACCEPTED: "Aceptada",
    TaxFilingStatus.REJECTED: "Rechazada",
}

MONTH_NAMES = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]

def calculate_iva(amount, rate=IVA_RATE) -> Decimal:
    return round_money(to_decimal(amount) * to_decimal(rate))

def calculate_pago_a_cuenta(gross_income) -> Decimal:
    return round_money(to_decimal(gross_income) * PAGO_A_CUENTA_RATE)

def split_iva(amount_with_iva) -> Tuple[Decimal, Decimal]:
    """Split an IVA-inclusive amount into (taxable base, IVA)."""
    amount = to_decimal(amount_with_iva)
    base = round_money(amount / (1 + IVA_RATE))
    return base, round_money(amount - base)

def compute_f07(sales: Iterable[Dict[str, Any]], purchases: Iterable[Dict[str, Any]]) -> Dict[str, Decimal]:
    """
    Monthly IVA return.

    Args:
        sales: invoices with total_gravada, total_exenta, total_iva and
            optional iva_retained
        purchases: approved expenses with amount (IVA included) and optional
            vendor_nit; only purchases from a registered vendor carry IVA credit
    """
    ventas_gravadas = ventas_exentas = iva_debito = iva_retenido = ZERO
    for inv in sales:
        ventas_gravadas += to_decimal(inv.get("total_gravada", 0))
        ventas_exentas += to_decimal(inv.get("total_exenta", 0))
        iva_debito += to_decimal(inv.get("total_iva", 0))
        iva_retenido += to_decimal(inv.get("iva_retained") or 0)

    compras_gravadas = compras_exentas = iva_credito = ZERO
    for exp in purchases:
        amount = to_decimal(exp.get("amount", 0))
        if exp.get("vendor_nit"):
            base, iva = split_iva(amount)
            compras_gravadas += base
            iva_credito += iva
        else:
            compras_exentas += amount

    iva_a_pagar = max(round_money(iva_debito - iva_credito - iva_retenido), ZERO)
    return {
        "ventas_gravadas": round_money(ventas_gravadas),
        "ventas_exentas": round_money(ventas_exentas),
        "compras_gravadas": round_money(compras_gravadas),
        "compras_exentas": round_money(compras_exentas),
        "iva_debito": round_money(iva_debito),
        "iva_credito": round_money(iva_credito),
        "iva_retenido": round_money(iva_retenido),
        "iva_a_pagar": iva_a_pagar,
        "total_a_pagar": iva_a_pagar,
    }

def compute_f11(gross_income, employee_income_tax: Iterable = ()) -> Dict[str, Decimal]:
    """Pago a cuenta on gross income plus ISR withheld from payroll (income_tax of each detail)."""
    ingresos_brutos = round_money(gross_income)
    pago_a_cuenta = calculate_pago_a_cuenta(ingresos_brutos)
    isr_retenido = round_money(sum((to_decimal(t) for t in employee_income_tax), ZERO))
    return {
        "ingresos_brutos": ingresos_brutos,
        "pago_a_cuenta": pago_a_cuenta,
        "isr_retenido_empleados": isr_retenido,
        "isr_retenido_terceros": ZERO,
        "total_a_pagar": round_money(pago_a_cuenta + isr_retenido),
    }
