from decimal import Decimal

from finitax.tax.filings import (
    TAX_FORM_META, TaxFormType, calculate_iva, calculate_pago_a_cuenta, compute_f07, compute_f11, split_iva,
)

D = Decimal

def test_iva_and_pago_a_cuenta():
    assert calculate_iva(1000) == D("130.00")
    assert calculate_iva("99.99") == D("13.00")
    assert calculate_pago_a_cuenta(10000) == D("175.00")

def test_split_iva():
    assert split_iva("113.00") == (D("100.00"), D("13.00"))

def test_f07():
    sales = [{"total_gravada": 1000, "total_exenta": 200, "total_iva": 130, "iva_retained": 10}]
    purchases = [{"amount": "113.00", "vendor_nit": "06140101001010"}, {"amount": 50}]
    f = compute_f07(sales, purchases)
    assert f["iva_debito"] == D("130.00")
    assert f["iva_credito"] == D("13.00")
    assert f["compras_gravadas"] == D("100.00")
    assert f["compras_exentas"] == D("50.00")
    assert f["iva_a_pagar"] == D("107.00")

def test_f07_never_negative():
    f = compute_f07([{"total_gravada": 100, "total_iva": 13}], [{"amount": 1130, "vendor_nit": "x"}])
    assert f["iva_a_pagar"] == D("0.00")

def test_f11_with_payroll_withholding():
    f = compute_f11(10000, ["60.45", D("245.95")])
    assert f["pago_a_cuenta"] == D("175.00")
    assert f["isr_retenido_empleados"] == D("306.40")
    assert f["total_a_pagar"] == D("481.40")

def test_form_metadata():
    assert TAX_FORM_META[TaxFormType.F14].frequency == "Anual"
    assert TaxFormType("F-07") is TaxFormType.F07
