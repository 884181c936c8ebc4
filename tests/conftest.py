import os

# Settings require a database URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import sip_planner.models  # noqa: F401
from sip_planner.models.plan import CalculationOperation
from sip_planner.services.annuity_math import AnnuityMath
from sip_planner.services.calculation_store import SqlCalculationStore
from sip_planner.services.instrument_catalog import InstrumentCatalog
from sip_planner.services.rate_engine import RateEngine, RateEngineResponse


class FakeRateEngine(RateEngine):
    """Answers like the real engine at a fixed blended rate and records every call."""

    def __init__(self, rate: str = "12.00%", response: RateEngineResponse = None):
        self.rate = rate
        self.response = response
        self.calls = []

    async def compute(self, operation, horizon_years, amount, log=None):
        self.calls.append((operation, horizon_years, amount))
        if self.response is not None:
            return self.response

        annual_rate = Decimal(self.rate.rstrip("%")) / 100
        months = horizon_years * 12
        if operation == CalculationOperation.SIP_FROM_FUTURE_VALUE:
            return RateEngineResponse(
                time_in_years=horizon_years,
                future_value=amount,
                calculated_best_weighted_annual_rate=self.rate,
                monthly_sip_required_best_weighted_case=AnnuityMath.sip_from_future_value(amount, months, annual_rate),
            )
        return RateEngineResponse(
            time_in_years=horizon_years,
            monthly_sip_amount=amount,
            calculated_best_weighted_annual_rate=self.rate,
            calculated_future_value=AnnuityMath.future_value_from_sip(amount, months, annual_rate),
        )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    maker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest.fixture
def store(session):
    return SqlCalculationStore(session)


@pytest.fixture
def catalog():
    return InstrumentCatalog.default()


@pytest.fixture
def rate_engine():
    return FakeRateEngine()
