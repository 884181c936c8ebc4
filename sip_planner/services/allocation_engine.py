import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from sip_planner.models.instrument import Instrument, InstrumentCategory
from sip_planner.models.plan import AllocationSuggestion
from sip_planner.services.annuity_math import CENT, to_decimal
from sip_planner.services.instrument_catalog import InstrumentCatalog

logger = logging.getLogger(__name__)

# Shares of the total monthly SIP. Fixed: a missing category leaves its share unallocated.
BANK_SHARE = Decimal("0.50")
MUTUAL_FUND_SHARE = Decimal("0.30")
GROWTH_SHARE = Decimal("0.20")


class AllocationEngine:
    """
    Splits a monthly SIP 50/30/20 across bank savings, mutual funds and the
    better of equity or gold, using the best-rate instrument of each for the horizon.
    """

    def __init__(self, catalog: InstrumentCatalog, log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None):
        self.catalog = catalog
        self.log = log or logger

    def best_growth_instrument(self, horizon_years: int) -> Optional[Instrument]:
        equity = self.catalog.select_best_instrument(InstrumentCategory.EQUITY, horizon_years)
        gold = self.catalog.select_best_instrument(InstrumentCategory.GOLD, horizon_years)
        if equity is None or gold is None:
            return equity or gold
        if equity.annualRate != gold.annualRate:
            return equity if equity.annualRate > gold.annualRate else gold
        # Same rate: earlier catalog entry wins
        return equity if self.catalog.position(equity) < self.catalog.position(gold) else gold

    def allocate(self, total_monthly_sip, horizon_years: Optional[int]) -> List[AllocationSuggestion]:
        if total_monthly_sip is None or to_decimal(total_monthly_sip) <= 0:
            self.log.warning("Overall monthly SIP is invalid or zero. Cannot provide allocated suggestions.")
            return []
        if horizon_years is None:
            self.log.warning("Time period is missing. Cannot provide allocated suggestions.")
            return []

        total = to_decimal(total_monthly_sip)
        picks = [
            (self.catalog.select_best_instrument(InstrumentCategory.BANK_SAVINGS, horizon_years), BANK_SHARE),
            (self.catalog.select_best_instrument(InstrumentCategory.MUTUAL_FUND, horizon_years), MUTUAL_FUND_SHARE),
            (self.best_growth_instrument(horizon_years), GROWTH_SHARE),
        ]

        suggestions = [
            AllocationSuggestion(
                category=instrument.category,
                instrumentName=instrument.name,
                description=instrument.description,
                horizonYears=instrument.horizonYears,
                annualRate=instrument.annualRate,
                allocatedMonthlySip=(total * share).quantize(CENT, rounding=ROUND_HALF_UP),
            )
            for instrument, share in picks
            if instrument is not None
        ]

        if len(suggestions) < len(picks):
            self.log.info(f"Only {len(suggestions)} categories available for {horizon_years}y horizon.")

        # Stable presentation order
        suggestions.sort(key=lambda s: s.category.value)
        return suggestions
