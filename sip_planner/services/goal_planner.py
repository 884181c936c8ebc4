import math
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import ValidationError

from sip_planner.core.log import ContextLogger, get_context_logger
from sip_planner.models.calculation import CalculationRequestRecord
from sip_planner.models.plan import (
    AllocationSuggestion,
    CalculationOperation,
    CalculationResult,
    GoalPlan,
    PlanRequest,
    ProjectionLine,
    Recommendation,
    RecommendationKind,
)
from sip_planner.services.allocation_engine import AllocationEngine
from sip_planner.services.annuity_math import AnnuityMath, round_money, to_decimal
from sip_planner.services.calculation_cache import CalculationCache
from sip_planner.services.calculation_store import CalculationStore, result_from_calculation
from sip_planner.services.instrument_catalog import InstrumentCatalog
from sip_planner.services.rate_engine import RateEngine

MIN_HORIZON_YEARS = 1
MAX_HORIZON_YEARS = 5
ZERO = Decimal("0.00")


class InvalidPlanInput(ValueError):
    """Request rejected before any computation."""


class GoalPlanner:
    """
    Orchestrates one planning request end to end.

    Steps:
    1. Validates the horizon (1-5 years) and amounts.
    2. Records the request.
    3. Resolves the calculation through the cache (rate engine on a miss).
    4. Allocates the monthly investment 50/30/20 across instruments.
    5. Computes shortfall against the original target and recommendations.

    Rate engine failures do not raise: they come back on the plan's `error`.
    """

    def __init__(self, store: CalculationStore, catalog: InstrumentCatalog, rate_engine: RateEngine):
        self.store = store
        self.catalog = catalog
        self.rate_engine = rate_engine

    @staticmethod
    def validate(request: PlanRequest) -> None:
        horizon = request.horizonYears
        if horizon is None or isinstance(horizon, bool) or not (MIN_HORIZON_YEARS <= horizon <= MAX_HORIZON_YEARS):
            raise InvalidPlanInput("Invalid time period. Time period must be 1, 2, 3, 4, or 5 years.")
        if request.amount is None or request.amount <= 0:
            if request.operation == CalculationOperation.SIP_FROM_FUTURE_VALUE:
                raise InvalidPlanInput("Future value must be a positive number.")
            raise InvalidPlanInput("Monthly SIP amount must be a positive number.")
        if request.originalTargetFutureValue is not None and request.originalTargetFutureValue <= 0:
            raise InvalidPlanInput("Original target future value must be a positive number.")

    async def plan(self, request: PlanRequest) -> GoalPlan:
        self.validate(request)

        amount = round_money(to_decimal(request.amount))
        if request.operation == CalculationOperation.SIP_FROM_FUTURE_VALUE:
            original_target = amount
        elif request.originalTargetFutureValue is not None:
            original_target = round_money(to_decimal(request.originalTargetFutureValue))
        else:
            original_target = None

        record = await self.store.add_request(CalculationRequestRecord(
            operation=request.operation.value,
            horizonYears=request.horizonYears,
            amount=amount,
            originalTargetFutureValue=original_target,
            goalLabel=request.goalLabel,
        ))
        log = get_context_logger(__name__, request_id=record.id, operation=record.operation)
        log.info(f"Planning {record.horizonYears}y goal for amount {amount}")

        result = await CalculationCache(self.store, self.rate_engine, log=log).get_or_compute(record)
        return self.build_plan(record, result, log)

    @staticmethod
    def build_request(**fields) -> PlanRequest:
        try:
            return PlanRequest(**fields)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(loc) for loc in error["loc"])
            raise InvalidPlanInput(f"Invalid value for {field}: {error['msg']}") from e

    async def plan_from_target(self, target_future_value, horizon_years: Optional[int], goal_label: Optional[str] = None) -> GoalPlan:
        return await self.plan(self.build_request(
            operation=CalculationOperation.SIP_FROM_FUTURE_VALUE,
            horizonYears=horizon_years,
            amount=target_future_value,
            goalLabel=goal_label,
        ))

    async def plan_from_contribution(
        self,
        monthly_sip,
        horizon_years: Optional[int],
        original_target_future_value=None,
        goal_label: Optional[str] = None,
    ) -> GoalPlan:
        return await self.plan(self.build_request(
            operation=CalculationOperation.FUTURE_VALUE_FROM_SIP,
            horizonYears=horizon_years,
            amount=monthly_sip,
            originalTargetFutureValue=original_target_future_value,
            goalLabel=goal_label or "Custom SIP What-If",
        ))

    async def rebuild_plan(self, request_id: UUID) -> Optional[GoalPlan]:
        """Plan bundle for a stored request, without touching the cache or the engine."""
        record = await self.store.get_request(request_id)
        if record is None:
            return None
        calculation = await self.store.get_calculation(request_id)
        if calculation is None:
            return None
        log = get_context_logger(__name__, request_id=record.id, operation=record.operation)
        return self.build_plan(record, result_from_calculation(calculation), log)

    @staticmethod
    def monthly_investment(record: CalculationRequestRecord, result: CalculationResult) -> Optional[Decimal]:
        if result.required_monthly_sip is not None:
            return result.required_monthly_sip
        if record.operation == CalculationOperation.FUTURE_VALUE_FROM_SIP.value:
            return record.amount
        return None

    def build_plan(self, record: CalculationRequestRecord, result: CalculationResult, log: Optional[ContextLogger] = None) -> GoalPlan:
        log = log or get_context_logger(__name__, request_id=record.id)
        plan = GoalPlan(
            requestId=record.id,
            operation=CalculationOperation(record.operation),
            horizonYears=record.horizonYears,
            amount=record.amount,
            originalTargetFutureValue=record.originalTargetFutureValue,
            goalLabel=record.goalLabel,
            blendedAnnualRate=result.blendedAnnualRate,
            primary=result.primary,
            rateBreakdown=result.rateBreakdown,
            error=result.error,
            details=result.details,
        )
        if result.is_error:
            log.warning(f"Calculation failed, returning plan without allocation: {result.error}")
            return plan

        months = record.horizonYears * 12
        monthly = self.monthly_investment(record, result)
        achieved = result.projected_future_value
        target = record.originalTargetFutureValue

        plan.monthlyInvestment = monthly
        plan.allocation = AllocationEngine(self.catalog, log).allocate(monthly, record.horizonYears)
        plan.projections = self.projections(plan.allocation, monthly, months, result.blendedAnnualRate, achieved)

        if target is not None and achieved is not None:
            plan.shortfall = max(ZERO, round_money(target - achieved))

        plan.recommendations = self.recommend(target, plan.shortfall, monthly, months, result.blendedAnnualRate)
        return plan

    @staticmethod
    def projections(
        allocation: List[AllocationSuggestion],
        monthly: Optional[Decimal],
        months: int,
        blended_rate: Optional[Decimal],
        achieved: Optional[Decimal],
    ) -> List[ProjectionLine]:
        if monthly is None or monthly <= 0:
            return []

        lines = [
            ProjectionLine(
                label=f"{s.category.value}: {s.instrumentName}",
                annualRate=s.annualRate,
                monthlySip=s.allocatedMonthlySip,
                expectedValue=AnnuityMath.future_value_from_sip(s.allocatedMonthlySip, months, s.annualRate),
            )
            for s in allocation
        ]

        blended_value = None
        if blended_rate is not None:
            blended_value = achieved if achieved is not None else AnnuityMath.future_value_from_sip(monthly, months, blended_rate)
        lines.append(ProjectionLine(label="Blended Portfolio", annualRate=blended_rate, monthlySip=monthly, expectedValue=blended_value))
        return lines

    @staticmethod
    def recommend(
        target: Optional[Decimal],
        shortfall: Decimal,
        monthly: Optional[Decimal],
        months: int,
        blended_rate: Optional[Decimal],
    ) -> List[Recommendation]:
        if target is None:
            return [Recommendation(
                kind=RecommendationKind.REVIEW_PLAN,
                message="Review your current investment plan to ensure it aligns with your goals.",
            )]

        if shortfall <= 0:
            return [Recommendation(
                kind=RecommendationKind.GOAL_MET,
                message="Your monthly investment is projected to meet or exceed your target goal.",
            )]

        rate = blended_rate if blended_rate is not None else ZERO
        required = AnnuityMath.sip_from_future_value(target, months, rate)
        recommendations = [Recommendation(
            kind=RecommendationKind.INCREASE_CONTRIBUTION,
            message=f"Increase investment to {required:,.2f}/month for goal completion.",
            requiredMonthlySip=required,
        )]

        # Without a blended rate or a contribution there is no timeline to offer
        if blended_rate is None or monthly is None or monthly <= 0:
            recommendations.append(Recommendation(
                kind=RecommendationKind.ADJUST_STRATEGY,
                message="Consider adjusting your investment strategy or timeline for optimal results.",
            ))
            return recommendations

        needed = AnnuityMath.months_to_achieve_goal(target, monthly, blended_rate, months)
        if needed is None:
            recommendations.append(Recommendation(
                kind=RecommendationKind.GOAL_UNREACHABLE,
                message="At the current monthly investment the goal is not reachable within 30 years.",
            ))
        elif needed > months:
            extra_years = math.ceil((needed - months) / 12)
            recommendations.append(Recommendation(
                kind=RecommendationKind.EXTEND_HORIZON,
                message=f"Alternatively, extend your timeline by approximately {extra_years} more years at the current monthly investment rate to achieve your goal.",
                extendYears=extra_years,
                monthsNeeded=needed,
            ))
        else:
            # Engine projection fell short, but the blended rate reaches the target by the horizon
            recommendations.append(Recommendation(
                kind=RecommendationKind.ON_TRACK,
                message="Your current monthly investment is projected to meet your goal within the specified timeline.",
                monthsNeeded=needed,
            ))
        return recommendations
