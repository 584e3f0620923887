from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from .models import ZERO, FilingStatus, PayPeriodType, to_cents, to_decimal
from .tax_tables import TaxBracket, TaxTable, default_tax_table

# Monthly cycles are anchored on a fixed day of month and annualize as 24
# periods; the same factor feeds federal, state and FICA.
PERIODS_PER_YEAR = {
    PayPeriodType.WEEKLY: 52,
    PayPeriodType.MONTHLY: 24,
}


@dataclass
class TaxResult:
    federal_tax: Decimal = ZERO
    state_tax: Decimal = ZERO
    social_security: Decimal = ZERO
    medicare: Decimal = ZERO

    @property
    def fica(self) -> Decimal:
        return self.social_security + self.medicare

    @property
    def total(self) -> Decimal:
        return self.federal_tax + self.state_tax + self.fica


class TaxCalculator:
    def __init__(self, tax_table: Optional[TaxTable] = None):
        self.tax_table = tax_table or default_tax_table()

    @staticmethod
    def _apply_brackets(amount: Decimal, brackets: List[TaxBracket]) -> Decimal:
        remaining = amount
        last_cap = ZERO
        total_tax = ZERO
        for bracket in brackets:
            band = remaining if bracket.up_to is None else min(remaining, bracket.up_to - last_cap)
            taxable_at_rate = max(band, ZERO)
            total_tax += taxable_at_rate * bracket.rate
            remaining -= taxable_at_rate
            if bracket.up_to is not None:
                last_cap = bracket.up_to
            if remaining <= 0:
                break
        if remaining > 0 and brackets:
            total_tax += remaining * brackets[-1].rate
        return total_tax

    def annual_federal(self, annual_gross: Decimal, filing_status: FilingStatus = FilingStatus.SINGLE) -> Decimal:
        brackets = self.tax_table.brackets_for("federal", FilingStatus(filing_status).value)
        return self._apply_brackets(annual_gross, brackets)

    def annual_state(
        self,
        annual_gross: Decimal,
        state: Optional[str] = None,
        state_tax_rate: Optional[Decimal] = None,
    ) -> Decimal:
        if state_tax_rate is not None:
            return annual_gross * to_decimal(state_tax_rate)
        return self._apply_brackets(annual_gross, self.tax_table.state_brackets(state))

    def annual_social_security(self, annual_gross: Decimal) -> Decimal:
        # Cap applied to the annualized figure only; no year-to-date tracking.
        fica = self.tax_table.fica
        return min(annual_gross, fica.social_security_wage_base) * fica.social_security_rate

    def annual_medicare(self, annual_gross: Decimal) -> Decimal:
        fica = self.tax_table.fica
        medicare = annual_gross * fica.medicare_rate
        if annual_gross > fica.additional_medicare_threshold:
            medicare += (annual_gross - fica.additional_medicare_threshold) * fica.additional_medicare_rate
        return medicare

    def calculate(
        self,
        gross: Decimal,
        pay_period_type: PayPeriodType = PayPeriodType.MONTHLY,
        state: Optional[str] = None,
        state_tax_rate: Optional[Decimal] = None,
        filing_status: FilingStatus = FilingStatus.SINGLE,
    ) -> TaxResult:
        """Withholding for one period's ``gross``.

        Gross is annualized, taxed against the annual schedules and each
        component is pro-rated back by ``gross / annual_gross``.
        """
        gross = to_decimal(gross)
        if gross <= 0:
            return TaxResult()
        annual_gross = gross * PERIODS_PER_YEAR[PayPeriodType(pay_period_type)]
        share = gross / annual_gross
        return TaxResult(
            federal_tax=to_cents(self.annual_federal(annual_gross, filing_status) * share),
            state_tax=to_cents(self.annual_state(annual_gross, state, state_tax_rate) * share),
            social_security=to_cents(self.annual_social_security(annual_gross) * share),
            medicare=to_cents(self.annual_medicare(annual_gross) * share),
        )
