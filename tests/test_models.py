from decimal import Decimal
from uuid import uuid4

from sip_planner.models.calculation import CalculationRequestRecord, GoalCalculation
from sip_planner.models.instrument import InvestmentInstrument


def test_created_at_is_timezone_aware():
    rows = [
        CalculationRequestRecord(operation="calculate_sip_from_fv", horizonYears=3, amount=Decimal("1000.00")),
        GoalCalculation(requestId=uuid4()),
        InvestmentInstrument(category="Gold", name="Digital Gold", horizonYears=1, annualRate=Decimal("0.08")),
    ]
    for row in rows:
        assert row.createdAt.tzinfo is not None


async def test_requests_persist_with_created_at(store):
    record = await store.add_request(
        CalculationRequestRecord(operation="calculate_fv_from_sip", horizonYears=2, amount=Decimal("500.00"))
    )
    assert (await store.get_request(record.id)).createdAt is not None
