import json
from decimal import Decimal

import httpx
import pytest

from sip_planner.models.plan import CalculationOperation
from sip_planner.services.rate_engine import RateEngineClient, RateEngineResponse, parse_percentage

URL = "http://rate-engine.test/sip"


def client_for(handler):
    return RateEngineClient(url=URL, timeout=5, transport=httpx.MockTransport(handler))


async def test_sip_request_sends_future_value_only():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={
            "time_in_years": 5,
            "future_value": 1200000,
            "calculated_best_weighted_annual_rate": "12.00%",
            "monthly_sip_required_best_weighted_case": 14547.86,
            "rate_breakdown": {"Equity": "0.30"},
        })

    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 5, Decimal("1200000.00"))

    assert seen["operation"] == "calculate_sip_from_fv"
    assert seen["time_in_years"] == 5
    assert "future_value" in seen
    assert "monthly_sip_amount" not in seen

    result = response.to_calculation_result()
    assert not result.is_error
    assert result.blendedAnnualRate == Decimal("0.1200")
    assert result.required_monthly_sip == Decimal("14547.86")
    assert result.projected_future_value is None
    assert result.rateBreakdown == {"Equity": Decimal("0.30")}


async def test_fv_request_sends_monthly_sip_only():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={
            "calculated_best_weighted_annual_rate": 11.5,
            "calculated_future_value": "824863.67",
        })

    response = await client_for(handler).compute(CalculationOperation.FUTURE_VALUE_FROM_SIP, 5, Decimal("10000.00"))

    assert "monthly_sip_amount" in seen
    assert "future_value" not in seen
    result = response.to_calculation_result()
    assert result.blendedAnnualRate == Decimal("0.1150")
    assert result.projected_future_value == Decimal("824863.67")


async def test_server_error():
    response = await client_for(lambda request: httpx.Response(503, text="down")).compute(
        CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.error == "Rate engine internal server error."
    assert response.to_calculation_result().is_error


async def test_client_error_body_is_passed_through():
    handler = lambda request: httpx.Response(400, json={"error": "time_in_years out of range", "details": "got 9"})
    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.error == "time_in_years out of range"
    assert response.details == "got 9"


async def test_client_error_without_error_field():
    handler = lambda request: httpx.Response(422, json={"details": "bad payload"})
    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.is_error
    assert "422" in response.error


async def test_client_error_unreadable_body():
    handler = lambda request: httpx.Response(400, text="<html>bad request</html>")
    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.error == "Failed to parse rate engine client error response."


async def test_invalid_success_body():
    handler = lambda request: httpx.Response(200, text="not json")
    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.error == "Invalid response from rate engine."


async def test_transport_failure_does_not_raise():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    response = await client_for(handler).compute(CalculationOperation.SIP_FROM_FUTURE_VALUE, 1, Decimal("1000"))
    assert response.is_error
    assert "connection refused" in response.details


def test_success_without_primary_result():
    result = RateEngineResponse(calculated_best_weighted_annual_rate="10%").to_calculation_result()
    assert not result.is_error
    assert result.primary is None
    assert result.blendedAnnualRate == Decimal("0.1000")


@pytest.mark.parametrize("value,expected", [
    ("12.5%", Decimal("0.1250")),
    (" 8 % ", Decimal("0.0800")),
    ("7.12345%", Decimal("0.0712")),
    ("0%", Decimal("0.0000")),
    ("", None),
    (None, None),
    ("abc", None),
    ("-1%", None),
    ("100%", None),
    ("150%", None),
])
def test_parse_percentage(value, expected):
    assert parse_percentage(value) == expected
