from decimal import Decimal

from timepay.models import FilingStatus, PayPeriodType
from timepay.taxes import TaxCalculator


def build_calculator() -> TaxCalculator:
    return TaxCalculator()


def test_weekly_withholding_on_default_state():
    result = build_calculator().calculate(Decimal("1000"), PayPeriodType.WEEKLY)

    assert result.federal_tax == Decimal("124.87")
    assert result.state_tax == Decimal("54.27")
    assert result.social_security == Decimal("62.00")
    assert result.medicare == Decimal("14.50")
    assert result.fica == Decimal("76.50")
    assert result.total == Decimal("255.64")


def test_zero_gross_short_circuits_to_zero():
    result = build_calculator().calculate(Decimal("0"), PayPeriodType.MONTHLY)

    assert result.total == 0


def test_explicit_state_rate_applies_flatly():
    result = build_calculator().calculate(Decimal("1000"), PayPeriodType.WEEKLY, state="CA", state_tax_rate=Decimal("0.05"))

    assert result.state_tax == Decimal("50.00")


def test_zero_tax_state():
    result = build_calculator().calculate(Decimal("1000"), PayPeriodType.WEEKLY, state="TX")

    assert result.state_tax == Decimal("0.00")


def test_married_status_withholds_less_federal():
    calc = build_calculator()

    single = calc.calculate(Decimal("2000"), PayPeriodType.MONTHLY)
    married = calc.calculate(Decimal("2000"), PayPeriodType.MONTHLY, filing_status=FilingStatus.MARRIED)

    assert married.federal_tax < single.federal_tax


def test_bracket_edges():
    calc = build_calculator()

    assert calc.annual_federal(Decimal("11600")) == Decimal("1160")
    assert calc.annual_federal(Decimal("47150")) == Decimal("5426")
    assert calc.annual_state(Decimal("20500")) == Decimal("963.5")
    assert calc.annual_state(Decimal("30500")) == Decimal("1553.5")


def test_social_security_cap_and_additional_medicare():
    calc = build_calculator()

    assert calc.annual_social_security(Decimal("200000")) == Decimal("10453.2")
    assert calc.annual_medicare(Decimal("250000")) == Decimal("4075")


def test_monthly_annualizes_by_24():
    calc = build_calculator()

    result = calc.calculate(Decimal("2000"), PayPeriodType.MONTHLY)

    # 48,000 a year: 1,160 + 4,266 + 187 federal, pro-rated by 1/24.
    assert result.federal_tax == Decimal("233.88")
