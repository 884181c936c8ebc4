from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
# Intermediate precision for the monthly rate and growth factor
INTERMEDIATE = Decimal("0.0000000001")
MAX_GOAL_MONTHS = 30 * 12


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.12 do not carry binary noise
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class AnnuityMath:
    """
    Annuity-due conversions between a monthly SIP and the future value it grows to.

    Contributions are made at the start of each month, so
        FV = P * (((1 + i)^n - 1) / i) * (1 + i),   i = annual_rate / 12

    All arithmetic is Decimal. The monthly rate and growth factor are kept to
    10 places, results are rounded half-up to cents.
    """

    @staticmethod
    def _growth_factor(months: int, annual_rate: Decimal) -> Decimal:
        monthly_rate = (annual_rate / Decimal(12)).quantize(INTERMEDIATE, rounding=ROUND_HALF_UP)
        compound = (Decimal(1) + monthly_rate) ** months
        return ((compound - Decimal(1)) / monthly_rate).quantize(INTERMEDIATE, rounding=ROUND_HALF_UP) * (Decimal(1) + monthly_rate)

    @staticmethod
    def future_value_from_sip(monthly_sip: Number, months: int, annual_rate: Number) -> Decimal:
        """
        Future value reached by investing `monthly_sip` for `months` months.

        Degenerate cases:
        - months <= 0: the SIP itself is returned.
        - annual_rate <= 0: no compounding, plain `monthly_sip * months`.
        """
        sip = to_decimal(monthly_sip)
        rate = to_decimal(annual_rate)

        if months <= 0:
            return sip
        if rate <= 0:
            return round_money(sip * months)

        return round_money(sip * AnnuityMath._growth_factor(months, rate))

    @staticmethod
    def sip_from_future_value(future_value: Number, months: int, annual_rate: Number) -> Decimal:
        """
        Monthly SIP needed to reach `future_value` after `months` months.
        Inverse of `future_value_from_sip`, with the same degenerate branches.
        """
        fv = to_decimal(future_value)
        rate = to_decimal(annual_rate)

        if months <= 0:
            return Decimal("0.00")
        if rate <= 0:
            return round_money(fv / months)

        return round_money(fv / AnnuityMath._growth_factor(months, rate))

    @staticmethod
    def months_to_achieve_goal(
        target_future_value: Number,
        monthly_sip: Number,
        annual_rate: Number,
        start_months: int,
    ) -> Optional[int]:
        """
        Smallest number of months (>= start_months) at which the SIP reaches the target.

        Scans month by month using `future_value_from_sip` so the answer obeys
        exactly the same rounding as the forward projection.

        Returns:
            0 if there is nothing to reach, None if the goal cannot be reached
            (no contribution, no growth, or not within 30 years).
        """
        target = to_decimal(target_future_value)
        sip = to_decimal(monthly_sip)
        rate = to_decimal(annual_rate)

        if target <= 0:
            return 0
        if sip <= 0 or rate <= 0:
            return None

        months = max(1, start_months)
        while months <= MAX_GOAL_MONTHS:
            if AnnuityMath.future_value_from_sip(sip, months, rate) >= target:
                return months
            months += 1
        return None
