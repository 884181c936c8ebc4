from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sip_planner.database import get_db
from sip_planner.services.calculation_store import SqlCalculationStore
from sip_planner.services.goal_planner import GoalPlanner
from sip_planner.services.instrument_catalog import InstrumentCatalog
from sip_planner.services.rate_engine import RateEngine, RateEngineClient

def get_rate_engine() -> RateEngine:
    return RateEngineClient()

async def get_catalog(db: AsyncSession = Depends(get_db)) -> InstrumentCatalog:
    return await InstrumentCatalog.load(db)

async def get_goal_planner(
    db: AsyncSession = Depends(get_db),
    catalog: InstrumentCatalog = Depends(get_catalog),
    rate_engine: RateEngine = Depends(get_rate_engine),
) -> GoalPlanner:
    return GoalPlanner(SqlCalculationStore(db), catalog, rate_engine)
