import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from sip_planner.models.calculation import CalculationRequestRecord, GoalCalculation
from sip_planner.models.plan import CalculationResult, ProjectedFutureValue, RequiredMonthlySip
from sip_planner.services.annuity_math import round_money, to_decimal
from sip_planner.services.rate_engine import RateEngineResponse

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    """
    Memo key for a calculation. Deliberately (amount, horizon) only: the
    operation is not part of it, so a target FV and a monthly SIP with the
    same numeric value share an entry.
    """
    amount: Decimal
    horizonYears: int

    @classmethod
    def for_request(cls, request: CalculationRequestRecord) -> "CacheKey":
        return cls(round_money(to_decimal(request.amount)), request.horizonYears)


class CalculationStore(ABC):
    """Persistence seam for calculation requests and their results."""

    @abstractmethod
    async def add_request(self, request: CalculationRequestRecord) -> CalculationRequestRecord:
        ...

    @abstractmethod
    async def get(self, key: CacheKey) -> Optional[GoalCalculation]:
        """Stored calculation of the earliest-created request matching `key`, if any."""
        ...

    @abstractmethod
    async def put(self, request_id: UUID, result: CalculationResult, payload: str) -> GoalCalculation:
        ...

    @abstractmethod
    async def get_request(self, request_id: UUID) -> Optional[CalculationRequestRecord]:
        ...

    @abstractmethod
    async def get_calculation(self, request_id: UUID) -> Optional[GoalCalculation]:
        ...


class SqlCalculationStore(CalculationStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_request(self, request: CalculationRequestRecord) -> CalculationRequestRecord:
        self.session.add(request)
        await self.session.commit()
        await self.session.refresh(request)
        return request

    async def get(self, key: CacheKey) -> Optional[GoalCalculation]:
        stmt = (
            select(CalculationRequestRecord)
            .where(
                CalculationRequestRecord.amount == key.amount,
                CalculationRequestRecord.horizonYears == key.horizonYears,
            )
            .order_by(CalculationRequestRecord.createdAt, CalculationRequestRecord.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        source = result.scalars().first()
        if source is None:
            return None

        calculation = await self.get_calculation(source.id)
        if calculation is None:
            logger.info(f"Cache source request {source.id} has no stored calculation yet.")
        return calculation

    async def put(self, request_id: UUID, result: CalculationResult, payload: str) -> GoalCalculation:
        calculation = GoalCalculation(
            requestId=request_id,
            blendedAnnualRate=result.blendedAnnualRate,
            monthlySipRequired=result.required_monthly_sip,
            projectedFutureValue=result.projected_future_value,
            rateEngineResponseJson=payload,
        )
        self.session.add(calculation)
        await self.session.commit()
        await self.session.refresh(calculation)
        return calculation

    async def get_request(self, request_id: UUID) -> Optional[CalculationRequestRecord]:
        return await self.session.get(CalculationRequestRecord, request_id)

    async def get_calculation(self, request_id: UUID) -> Optional[GoalCalculation]:
        stmt = select(GoalCalculation).where(GoalCalculation.requestId == request_id).order_by(GoalCalculation.createdAt)
        result = await self.session.execute(stmt)
        return result.scalars().first()


def result_from_calculation(calculation: GoalCalculation) -> CalculationResult:
    """
    Rebuilds a CalculationResult from a stored row: from the raw engine
    payload when it parses, otherwise from the stored columns.
    """
    if calculation.rateEngineResponseJson:
        try:
            return RateEngineResponse.model_validate_json(calculation.rateEngineResponseJson).to_calculation_result()
        except ValidationError as e:
            logger.warning(f"Stored payload for request {calculation.requestId} unreadable, using columns: {e}")

    primary = None
    if calculation.monthlySipRequired is not None:
        primary = RequiredMonthlySip(amount=calculation.monthlySipRequired)
    elif calculation.projectedFutureValue is not None:
        primary = ProjectedFutureValue(amount=calculation.projectedFutureValue)
    return CalculationResult(blendedAnnualRate=calculation.blendedAnnualRate, primary=primary)
