from enum import Enum
from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field
from uuid6 import uuid7

class InstrumentCategory(str, Enum):
    BANK_SAVINGS = "Bank Savings Products"
    MUTUAL_FUND = "Mutual funds"
    EQUITY = "Equity"
    GOLD = "Gold"


class Instrument(BaseModel):
    """An investment product offered for one horizon at one annual rate. Immutable."""
    model_config = ConfigDict(frozen=True)

    category: InstrumentCategory
    name: str
    description: Optional[str] = None
    horizonYears: int
    annualRate: Decimal


# Instrument Models

class InstrumentBase(SQLModel):
    category: str # one of InstrumentCategory values
    name: str
    description: Optional[str] = None
    horizonYears: int = Field(ge=1, le=5, sa_column_kwargs={"name": "horizon_years"})
    annualRate: Decimal = Field(ge=0, max_digits=6, decimal_places=4, sa_column_kwargs={"name": "annual_rate"})

class InvestmentInstrument(InstrumentBase, table=True):
    __tablename__ = "investment_instruments"
    __table_args__ = (UniqueConstraint("name", "horizon_years", name="uq_instrument_name_horizon"),)
    id: UUID = Field(default_factory=uuid7, primary_key=True)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "created_at"})

    def to_instrument(self) -> Instrument:
        return Instrument(
            category=InstrumentCategory(self.category),
            name=self.name,
            description=self.description,
            horizonYears=self.horizonYears,
            annualRate=self.annualRate,
        )

class InstrumentCreate(InstrumentBase):
    category: InstrumentCategory

class InstrumentRead(InstrumentBase):
    id: UUID
    createdAt: datetime
