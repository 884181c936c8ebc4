from typing import Optional
from uuid import UUID
from decimal import Decimal
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Text
from sqlmodel import SQLModel, Field
from uuid6 import uuid7

# Calculation Request / Result Models
#
# One row in calculation_requests per planning request; one row in
# goal_calculations per request, linked by request_id. Neither table is ever
# pruned: together they are the memo the calculation cache reads from.

class CalculationRequestBase(SQLModel):
    operation: str # "calculate_sip_from_fv" | "calculate_fv_from_sip"
    horizonYears: int = Field(sa_column_kwargs={"name": "horizon_years"})
    # Target FV for calculate_sip_from_fv, monthly SIP for calculate_fv_from_sip
    amount: Decimal = Field(max_digits=19, decimal_places=2, index=True)
    originalTargetFutureValue: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=2, sa_column_kwargs={"name": "original_target_future_value"})
    goalLabel: Optional[str] = Field(default=None, sa_column_kwargs={"name": "goal_label"})

class CalculationRequestRecord(CalculationRequestBase, table=True):
    __tablename__ = "calculation_requests"
    id: UUID = Field(default_factory=uuid7, primary_key=True)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "created_at"})

class CalculationRequestRead(CalculationRequestBase):
    id: UUID
    createdAt: datetime


class GoalCalculationBase(SQLModel):
    requestId: UUID = Field(foreign_key="calculation_requests.id", index=True, sa_column_kwargs={"name": "request_id"})
    blendedAnnualRate: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=4, sa_column_kwargs={"name": "blended_annual_rate"})
    monthlySipRequired: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=2, sa_column_kwargs={"name": "monthly_sip_required"})
    projectedFutureValue: Optional[Decimal] = Field(default=None, max_digits=19, decimal_places=2, sa_column_kwargs={"name": "projected_future_value"})

class GoalCalculation(GoalCalculationBase, table=True):
    __tablename__ = "goal_calculations"
    id: UUID = Field(default_factory=uuid7, primary_key=True)
    # Raw rate engine response as received (or an error payload)
    rateEngineResponseJson: Optional[str] = Field(default=None, sa_column=Column("rate_engine_response_json", Text))
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True), sa_column_kwargs={"name": "created_at"})

class GoalCalculationRead(GoalCalculationBase):
    id: UUID
    createdAt: datetime
