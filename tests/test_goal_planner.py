import math
from decimal import Decimal
from uuid import uuid4

import pytest

from sip_planner.models.instrument import InstrumentCategory
from sip_planner.models.plan import CalculationOperation, RecommendationKind
from sip_planner.services.annuity_math import AnnuityMath
from sip_planner.services.goal_planner import GoalPlanner, InvalidPlanInput
from sip_planner.services.rate_engine import RateEngineResponse

from .conftest import FakeRateEngine


@pytest.fixture
def planner(store, catalog, rate_engine):
    return GoalPlanner(store, catalog, rate_engine)


@pytest.mark.parametrize("years", [0, 6, -1, None])
async def test_rejects_horizon_outside_one_to_five_years(planner, rate_engine, years):
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_target(1200000, years)
    assert rate_engine.calls == []


@pytest.mark.parametrize("amount", [0, -500, None])
async def test_rejects_non_positive_amounts(planner, amount):
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_target(amount, 3)
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_contribution(amount, 3)


async def test_rejects_non_positive_original_target(planner):
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_contribution(5000, 3, original_target_future_value=0)


async def test_plan_from_target(planner):
    plan = await planner.plan_from_target(1200000, 5, "Dream Car")

    assert plan.error is None
    assert plan.operation == CalculationOperation.SIP_FROM_FUTURE_VALUE
    assert plan.goalLabel == "Dream Car"
    assert plan.originalTargetFutureValue == Decimal("1200000.00")
    assert plan.blendedAnnualRate == Decimal("0.1200")
    assert plan.primary.kind == "required_monthly_sip"
    assert Decimal("14547") < plan.monthlyInvestment < Decimal("14549")

    assert [s.category for s in plan.allocation] == [
        InstrumentCategory.BANK_SAVINGS,
        InstrumentCategory.EQUITY,
        InstrumentCategory.MUTUAL_FUND,
    ]
    allocated = sum(s.allocatedMonthlySip for s in plan.allocation)
    assert abs(allocated - plan.monthlyInvestment) <= Decimal("0.02")

    assert plan.shortfall == Decimal("0.00")
    assert [r.kind for r in plan.recommendations] == [RecommendationKind.GOAL_MET]


async def test_projections_cover_allocation_and_blend(planner):
    plan = await planner.plan_from_target(600000, 3)

    assert len(plan.projections) == len(plan.allocation) + 1
    for line, suggestion in zip(plan.projections, plan.allocation):
        assert line.monthlySip == suggestion.allocatedMonthlySip
        assert line.expectedValue == AnnuityMath.future_value_from_sip(suggestion.allocatedMonthlySip, 36, suggestion.annualRate)
    blended = plan.projections[-1]
    assert blended.label == "Blended Portfolio"
    assert blended.expectedValue == AnnuityMath.future_value_from_sip(plan.monthlyInvestment, 36, Decimal("0.12"))


async def test_shortfall_recommends_contribution_and_longer_horizon(planner):
    plan = await planner.plan_from_contribution(10000, 5, original_target_future_value=1200000)

    achieved = AnnuityMath.future_value_from_sip(10000, 60, Decimal("0.12"))
    assert plan.primary.kind == "projected_future_value"
    assert plan.monthlyInvestment == Decimal("10000.00")
    assert plan.shortfall == Decimal("1200000.00") - achieved
    assert plan.goalLabel == "Custom SIP What-If"

    increase, extend = plan.recommendations
    assert increase.kind == RecommendationKind.INCREASE_CONTRIBUTION
    assert increase.requiredMonthlySip == AnnuityMath.sip_from_future_value(1200000, 60, Decimal("0.12"))

    needed = AnnuityMath.months_to_achieve_goal(1200000, 10000, Decimal("0.12"), 60)
    assert 60 < needed <= 360
    assert extend.kind == RecommendationKind.EXTEND_HORIZON
    assert extend.monthsNeeded == needed
    assert extend.extendYears == math.ceil((needed - 60) / 12)


async def test_unreachable_goal(planner):
    plan = await planner.plan_from_contribution(1, 1, original_target_future_value=10_000_000)

    assert [r.kind for r in plan.recommendations] == [
        RecommendationKind.INCREASE_CONTRIBUTION,
        RecommendationKind.GOAL_UNREACHABLE,
    ]


async def test_contribution_meeting_target(planner):
    plan = await planner.plan_from_contribution(30000, 5, original_target_future_value=1200000)

    assert plan.shortfall == Decimal("0.00")
    assert [r.kind for r in plan.recommendations] == [RecommendationKind.GOAL_MET]


async def test_contribution_without_target(planner):
    plan = await planner.plan_from_contribution(5000, 2, goal_label="Holiday")

    assert plan.originalTargetFutureValue is None
    assert plan.shortfall == Decimal("0.00")
    assert plan.goalLabel == "Holiday"
    assert [r.kind for r in plan.recommendations] == [RecommendationKind.REVIEW_PLAN]
    assert len(plan.allocation) == 3


async def test_engine_failure_comes_back_on_plan(store, catalog):
    failing = FakeRateEngine(response=RateEngineResponse.failure("Rate engine internal server error.", "503: down"))
    plan = await GoalPlanner(store, catalog, failing).plan_from_target(100000, 2)

    assert plan.error == "Rate engine internal server error."
    assert plan.allocation == []
    assert plan.recommendations == []
    assert plan.monthlyInvestment is None

    stored = await store.get_calculation(plan.requestId)
    assert "SIP/FV calculation failed" in stored.rateEngineResponseJson


async def test_amount_is_rounded_to_cents(planner, rate_engine):
    plan = await planner.plan_from_target("100000.005", 2)
    assert plan.amount == Decimal("100000.01")
    assert rate_engine.calls[0][2] == Decimal("100000.01")


async def test_rebuild_plan_matches_original(planner, rate_engine):
    plan = await planner.plan_from_contribution(10000, 5, original_target_future_value=1200000)

    rebuilt = await planner.rebuild_plan(plan.requestId)

    assert rebuilt == plan
    assert len(rate_engine.calls) == 1


async def test_rebuild_plan_unknown_request(planner):
    assert await planner.rebuild_plan(uuid4()) is None


@pytest.mark.parametrize("amount,years", [(1000, 2.5), ("lots", 3), (1000, "three")])
async def test_uncoercible_input_is_invalid_plan_input(planner, rate_engine, amount, years):
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_target(amount, years)
    with pytest.raises(InvalidPlanInput):
        await planner.plan_from_contribution(amount, years)
    assert rate_engine.calls == []


async def test_missing_blended_rate_advises_adjusting_strategy(store, catalog):
    engine = FakeRateEngine(response=RateEngineResponse(calculated_future_value=Decimal("500000.00")))
    plan = await GoalPlanner(store, catalog, engine).plan_from_contribution(10000, 5, original_target_future_value=1200000)

    assert plan.blendedAnnualRate is None
    increase, adjust = plan.recommendations
    assert increase.kind == RecommendationKind.INCREASE_CONTRIBUTION
    assert increase.requiredMonthlySip == Decimal("20000.00")
    assert adjust.kind == RecommendationKind.ADJUST_STRATEGY


async def test_engine_shortfall_reached_by_blended_rate_is_on_track(store, catalog):
    engine = FakeRateEngine(response=RateEngineResponse(
        calculated_best_weighted_annual_rate="12.00%",
        calculated_future_value=Decimal("800000.00"),
    ))
    plan = await GoalPlanner(store, catalog, engine).plan_from_contribution(10000, 5, original_target_future_value=820000)

    assert plan.shortfall == Decimal("20000.00")
    increase, on_track = plan.recommendations
    assert increase.kind == RecommendationKind.INCREASE_CONTRIBUTION
    assert on_track.kind == RecommendationKind.ON_TRACK
    assert on_track.monthsNeeded == 60
