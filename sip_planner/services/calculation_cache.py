import json
import logging
from typing import Optional, Union

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from sip_planner.models.calculation import CalculationRequestRecord
from sip_planner.models.plan import CalculationOperation, CalculationResult
from sip_planner.services.calculation_store import CacheKey, CalculationStore
from sip_planner.services.rate_engine import RateEngine, RateEngineResponse

logger = logging.getLogger(__name__)

SERIALIZATION_FAILED_PAYLOAD = json.dumps({"error": "Failed to serialize rate engine response"})


def serialize_response(response: RateEngineResponse, log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None) -> str:
    """Payload persisted next to a result. Never raises."""
    log = log or logger
    if response.is_error:
        return json.dumps({
            "error": "SIP/FV calculation failed",
            "details": response.error if not response.details else f"{response.error} {response.details}",
        })
    try:
        return response.model_dump_json(exclude_none=True)
    except (PydanticSerializationError, ValueError) as e:
        log.warning(f"Failed to serialize rate engine response: {e}")
        return SERIALIZATION_FAILED_PAYLOAD


class CalculationCache:
    """
    Read-through memo in front of the rate engine.

    The canonical entry for a key is the calculation stored for the
    earliest-created request with that (amount, horizon); later entries are
    never consulted. A stored entry that does not deserialize, or that
    records an error, counts as a miss. Every request, hit or miss, gets its
    own stored calculation.

    There is no locking: two concurrent misses on one key both call the
    engine and both persist.
    """

    def __init__(
        self,
        store: CalculationStore,
        rate_engine: RateEngine,
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.store = store
        self.rate_engine = rate_engine
        self.log = log or logger

    async def lookup(self, key: CacheKey) -> Optional[RateEngineResponse]:
        cached = await self.store.get(key)
        if cached is None or not cached.rateEngineResponseJson:
            return None

        try:
            response = RateEngineResponse.model_validate_json(cached.rateEngineResponseJson)
        except ValidationError as e:
            self.log.warning(f"Failed to deserialize cached response for request {cached.requestId}: {e}. Recalculating.")
            return None

        if response.is_error:
            self.log.warning(f"Cached calculation for request {cached.requestId} itself contained an error. Recalculating.")
            return None

        self.log.info(f"Found calculation in cache for amount: {key.amount}, years: {key.horizonYears} (from request ID: {cached.requestId})")
        return response

    async def get_or_compute(self, request: CalculationRequestRecord) -> CalculationResult:
        key = CacheKey.for_request(request)
        response = await self.lookup(key)

        if response is None:
            self.log.info(f"Calculation not cached. Calling rate engine for amount: {key.amount}, years: {key.horizonYears}")
            response = await self.rate_engine.compute(
                CalculationOperation(request.operation),
                request.horizonYears,
                key.amount,
                log=self.log,
            )

        result = response.to_calculation_result(self.log)
        await self.store.put(request.id, result, serialize_response(response, self.log))
        return result
