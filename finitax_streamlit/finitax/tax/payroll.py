"""
Salvadoran payroll withholdings (ISSS, AFP, ISR), 2024-2026 tables.

Each component is rounded to cents on its own before it is summed; statutory
filings are built the same way, so do not "simplify" to a single rounding at
the end.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, NamedTuple, Optional

from finitax.core.money import ZERO, round_money, to_decimal

# ISSS: employee 3%, employer 7.5%, contributory salary capped at $1,000
ISSS_EMPLOYEE_RATE = Decimal("0.03")
ISSS_EMPLOYER_RATE = Decimal("0.075")
ISSS_MAX_SALARY = Decimal("1000.00")

# AFP: employee 7.25%, employer 8.75%, no cap
AFP_EMPLOYEE_RATE = Decimal("0.0725")
AFP_EMPLOYER_RATE = Decimal("0.0875")

class TaxBracket(NamedTuple):
    floor: Decimal
    ceiling: Optional[Decimal]  # inclusive; None for the open top bracket
    rate: Decimal
    addend: Decimal

# ISR monthly withholding table
ISR_BRACKETS = (
    TaxBracket(Decimal("0.00"), Decimal("472.00"), Decimal("0.00"), Decimal("0.00")),
    TaxBracket(Decimal("472.00"), Decimal("895.24"), Decimal("0.10"), Decimal("17.67")),
    TaxBracket(Decimal("895.24"), Decimal("2038.10"), Decimal("0.20"), Decimal("60.00")),
    TaxBracket(Decimal("2038.10"), None, Decimal("0.30"), Decimal("288.57")),
)

@dataclass(frozen=True)
class DeductionBreakdown:
    gross_salary: Decimal
    isss_employee: Decimal
    isss_employer: Decimal
    afp_employee: Decimal
    afp_employer: Decimal
    income_tax: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    employer_cost: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)

def calculate_income_tax(taxable_income) -> Decimal:
    """Unrounded ISR for one month of taxable income."""
    income = to_decimal(taxable_income)
    for bracket in ISR_BRACKETS:
        if bracket.ceiling is None or income <= bracket.ceiling:
            if bracket.rate == 0:
                return ZERO
            return (income - bracket.floor) * bracket.rate + bracket.addend
    return ZERO

def calculate_deductions(gross_salary) -> DeductionBreakdown:
    gross = to_decimal(gross_salary)
    if gross < 0:
        raise ValueError(f"gross salary must be non-negative, got {gross}")

    isss_base = min(gross, ISSS_MAX_SALARY)
    isss_employee = round_money(isss_base * ISSS_EMPLOYEE_RATE)
    isss_employer = round_money(isss_base * ISSS_EMPLOYER_RATE)
    afp_employee = round_money(gross * AFP_EMPLOYEE_RATE)
    afp_employer = round_money(gross * AFP_EMPLOYER_RATE)

    # both employee contributions are pre-tax
    taxable_income = gross - isss_employee - afp_employee
    income_tax = round_money(calculate_income_tax(taxable_income))

    total_deductions = round_money(isss_employee + afp_employee + income_tax)
    return DeductionBreakdown(
        gross_salary=gross,
        isss_employee=isss_employee,
        isss_employer=isss_employer,
        afp_employee=afp_employee,
        afp_employer=afp_employer,
        income_tax=income_tax,
        total_deductions=total_deductions,
        net_salary=round_money(gross - total_deductions),
        employer_cost=round_money(isss_employer + afp_employer),
    )
