from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import UUID
from decimal import Decimal
from pydantic import BaseModel, Field

from .instrument import InstrumentCategory

class CalculationOperation(str, Enum):
    SIP_FROM_FUTURE_VALUE = "calculate_sip_from_fv"
    FUTURE_VALUE_FROM_SIP = "calculate_fv_from_sip"


# Primary result: exactly one of these, tagged by `kind`

class RequiredMonthlySip(BaseModel):
    kind: Literal["required_monthly_sip"] = "required_monthly_sip"
    amount: Decimal

class ProjectedFutureValue(BaseModel):
    kind: Literal["projected_future_value"] = "projected_future_value"
    amount: Decimal

PrimaryResult = Annotated[Union[RequiredMonthlySip, ProjectedFutureValue], Field(discriminator="kind")]


class CalculationResult(BaseModel):
    blendedAnnualRate: Optional[Decimal] = None
    primary: Optional[PrimaryResult] = None
    rateBreakdown: Dict[str, Decimal] = {}
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    @property
    def required_monthly_sip(self) -> Optional[Decimal]:
        return self.primary.amount if isinstance(self.primary, RequiredMonthlySip) else None

    @property
    def projected_future_value(self) -> Optional[Decimal]:
        return self.primary.amount if isinstance(self.primary, ProjectedFutureValue) else None


class AllocationSuggestion(BaseModel):
    category: InstrumentCategory
    instrumentName: str
    description: Optional[str] = None
    horizonYears: int
    annualRate: Decimal
    allocatedMonthlySip: Decimal


class ProjectionLine(BaseModel):
    label: str
    annualRate: Optional[Decimal] = None
    monthlySip: Decimal
    expectedValue: Optional[Decimal] = None


class RecommendationKind(str, Enum):
    INCREASE_CONTRIBUTION = "increase_contribution"
    EXTEND_HORIZON = "extend_horizon"
    GOAL_UNREACHABLE = "goal_unreachable"
    GOAL_MET = "goal_met"
    ON_TRACK = "on_track"
    ADJUST_STRATEGY = "adjust_strategy"
    REVIEW_PLAN = "review_plan"

class Recommendation(BaseModel):
    kind: RecommendationKind
    message: str
    requiredMonthlySip: Optional[Decimal] = None
    extendYears: Optional[int] = None
    monthsNeeded: Optional[int] = None


class PlanRequest(BaseModel):
    operation: CalculationOperation
    horizonYears: Optional[int] = None
    amount: Optional[Decimal] = None
    originalTargetFutureValue: Optional[Decimal] = None
    goalLabel: Optional[str] = None


class GoalPlan(BaseModel):
    requestId: Optional[UUID] = None
    operation: CalculationOperation
    horizonYears: int
    amount: Decimal
    originalTargetFutureValue: Optional[Decimal] = None
    goalLabel: Optional[str] = None

    blendedAnnualRate: Optional[Decimal] = None
    primary: Optional[PrimaryResult] = None
    rateBreakdown: Dict[str, Decimal] = {}
    monthlyInvestment: Optional[Decimal] = None

    allocation: List[AllocationSuggestion] = []
    projections: List[ProjectionLine] = []
    shortfall: Decimal = Decimal("0.00")
    recommendations: List[Recommendation] = []

    error: Optional[str] = None
    details: Optional[str] = None
