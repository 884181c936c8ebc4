from .instrument import Instrument, InstrumentCategory, InvestmentInstrument, InstrumentCreate, InstrumentRead
from .calculation import (
    CalculationRequestRecord,
    CalculationRequestRead,
    GoalCalculation,
    GoalCalculationRead
)
from .plan import (
    CalculationOperation,
    CalculationResult,
    RequiredMonthlySip,
    ProjectedFutureValue,
    AllocationSuggestion,
    ProjectionLine,
    Recommendation,
    RecommendationKind,
    PlanRequest,
    GoalPlan
)
