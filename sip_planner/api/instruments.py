from typing import List, Any
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sip_planner.database import get_db
from sip_planner.models.instrument import InvestmentInstrument, InstrumentCreate, InstrumentRead
from sip_planner.services.instrument_catalog import find_instrument

router = APIRouter()

@router.get("", response_model=List[InstrumentRead])
async def get_all_instruments(db: AsyncSession = Depends(get_db)) -> Any:
    statement = select(InvestmentInstrument).order_by(InvestmentInstrument.createdAt, InvestmentInstrument.id)
    results = await db.execute(statement)
    return results.scalars().all()

@router.get("/horizon/{years}", response_model=List[InstrumentRead])
async def get_instruments_by_horizon(years: int, db: AsyncSession = Depends(get_db)) -> Any:
    statement = (
        select(InvestmentInstrument)
        .where(InvestmentInstrument.horizonYears == years)
        .order_by(InvestmentInstrument.createdAt, InvestmentInstrument.id)
    )
    results = await db.execute(statement)
    return results.scalars().all()

@router.post("", response_model=InstrumentRead, status_code=status.HTTP_201_CREATED)
async def create_instrument(
    instrument_in: InstrumentCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Adds an instrument to the catalog. Instruments are immutable: if one with
    the same name and horizon exists it is returned unchanged.
    """
    existing = await find_instrument(db, instrument_in.name, instrument_in.horizonYears)
    if existing:
        response.status_code = status.HTTP_200_OK
        return existing

    instrument = InvestmentInstrument(
        category=instrument_in.category.value,
        name=instrument_in.name,
        description=instrument_in.description,
        horizonYears=instrument_in.horizonYears,
        annualRate=instrument_in.annualRate,
    )
    db.add(instrument)
    await db.commit()
    await db.refresh(instrument)
    return instrument
