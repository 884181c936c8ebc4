import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from sip_planner.core.config import settings
from sip_planner.models.plan import (
    CalculationOperation,
    CalculationResult,
    ProjectedFutureValue,
    RequiredMonthlySip,
)

logger = logging.getLogger(__name__)

Log = Union[logging.Logger, logging.LoggerAdapter]

RATE_PLACES = Decimal("0.0001")


class RateEngineRequest(BaseModel):
    operation: CalculationOperation
    time_in_years: int
    future_value: Optional[Decimal] = None
    monthly_sip_amount: Optional[Decimal] = None


class RateEngineResponse(BaseModel):
    """Wire format of the external rate engine. Exactly one result field is set on success."""
    model_config = ConfigDict(extra="ignore")

    time_in_years: Optional[int] = None
    future_value: Optional[Decimal] = None
    monthly_sip_amount: Optional[Decimal] = None
    calculated_best_weighted_annual_rate: Optional[str] = None
    monthly_sip_required_best_weighted_case: Optional[Decimal] = None
    calculated_future_value: Optional[Decimal] = None
    rate_breakdown: Optional[Dict[str, Decimal]] = None
    error: Optional[str] = None
    details: Optional[str] = None

    @field_validator("calculated_best_weighted_annual_rate", mode="before")
    @classmethod
    def coerce_rate(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @classmethod
    def failure(cls, error: str, details: Optional[str] = None) -> "RateEngineResponse":
        return cls(error=error, details=details)

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    def to_calculation_result(self, log: Optional[Log] = None) -> CalculationResult:
        log = log or logger
        if self.is_error:
            return CalculationResult(error=self.error, details=self.details)

        primary = None
        if self.monthly_sip_required_best_weighted_case is not None:
            primary = RequiredMonthlySip(amount=self.monthly_sip_required_best_weighted_case)
        elif self.calculated_future_value is not None:
            primary = ProjectedFutureValue(amount=self.calculated_future_value)
        else:
            log.warning("Rate engine response was successful but contained no primary calculation result.")

        return CalculationResult(
            blendedAnnualRate=parse_percentage(self.calculated_best_weighted_annual_rate, log),
            primary=primary,
            rateBreakdown=dict(self.rate_breakdown or {}),
        )


def parse_percentage(value: Optional[str], log: Optional[Log] = None) -> Optional[Decimal]:
    """'12.5%' -> Decimal('0.1250'). Blank, unparseable or out-of-range values give None."""
    log = log or logger
    if value is None or not value.strip():
        return None
    try:
        rate = (Decimal(value.replace("%", "").strip()) / Decimal(100)).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as e:
        log.warning(f"Failed to parse percentage string: {value} - {e}")
        return None
    if rate < 0 or rate >= 1:
        log.warning(f"Blended rate {value} outside [0%, 100%), ignoring.")
        return None
    return rate


class RateEngine(ABC):
    """Computes the blended rate and the complementary SIP/FV quantity for a request."""

    @abstractmethod
    async def compute(
        self,
        operation: CalculationOperation,
        horizon_years: int,
        amount: Decimal,
        log: Optional[Log] = None,
    ) -> RateEngineResponse:
        ...


class RateEngineClient(RateEngine):
    """
    HTTP client for the external rate engine.

    Never raises for engine-side problems: HTTP errors, transport failures and
    malformed bodies all come back as a response with `error` set. No retries.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.RATE_ENGINE_URL
        self.timeout = timeout if timeout is not None else settings.RATE_ENGINE_TIMEOUT_SECONDS
        self.transport = transport

    @staticmethod
    def build_request(operation: CalculationOperation, horizon_years: int, amount: Decimal) -> RateEngineRequest:
        if operation == CalculationOperation.SIP_FROM_FUTURE_VALUE:
            return RateEngineRequest(operation=operation, time_in_years=horizon_years, future_value=amount)
        return RateEngineRequest(operation=operation, time_in_years=horizon_years, monthly_sip_amount=amount)

    async def compute(
        self,
        operation: CalculationOperation,
        horizon_years: int,
        amount: Decimal,
        log: Optional[Log] = None,
    ) -> RateEngineResponse:
        log = log or logger
        try:
            operation = CalculationOperation(operation)
        except ValueError:
            return RateEngineResponse.failure(
                "Invalid internal operation type provided to rate engine client.",
                f"Operation: {operation} is not supported.",
            )

        payload = self.build_request(operation, horizon_years, amount).model_dump(mode="json", exclude_none=True)
        log.info(f"Calling rate engine: {self.url} with operation: {operation.value}, request: {payload}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            log.error(f"An unexpected error occurred while calling rate engine: {e!r}")
            return RateEngineResponse.failure("An unexpected error occurred while calling the rate engine.", str(e))

        if response.status_code >= 500:
            log.error(f"Server error calling rate engine: {response.status_code} - {response.text}")
            return RateEngineResponse.failure("Rate engine internal server error.", f"{response.status_code}: {response.text}")

        if response.status_code >= 400:
            log.error(f"Client error calling rate engine: {response.status_code} - {response.text}")
            try:
                parsed = RateEngineResponse.model_validate_json(response.text)
            except ValidationError as e:
                log.error(f"Failed to parse rate engine client error response body: {e}")
                return RateEngineResponse.failure("Failed to parse rate engine client error response.", f"{response.status_code}: {response.text}")
            if not parsed.is_error:
                parsed.error = f"Rate engine rejected the request ({response.status_code})."
            return parsed

        try:
            return RateEngineResponse.model_validate_json(response.text)
        except ValidationError as e:
            log.error(f"Rate engine returned an unreadable response: {e}")
            return RateEngineResponse.failure("Invalid response from rate engine.", response.text[:500])
