import logging
from typing import List, Optional, Any
from uuid import UUID
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from sip_planner.api import deps
from sip_planner.models.calculation import CalculationRequestRead, GoalCalculationRead
from sip_planner.models.plan import AllocationSuggestion, GoalPlan
from sip_planner.services.goal_planner import GoalPlanner, InvalidPlanInput

logger = logging.getLogger(__name__)

router = APIRouter()

# --- Pydantic Schemas ---

class CalculateAndSaveRequest(BaseModel):
    futureValue: Optional[Decimal] = None
    timePeriodYears: Optional[int] = None
    goalLabel: Optional[str] = None

class CalculateFvFromSipRequest(BaseModel):
    monthlySipAmount: Optional[Decimal] = None
    timePeriodYears: Optional[int] = None
    # What the user was originally aiming for, used for the shortfall
    originalTargetFutureValue: Optional[Decimal] = None
    goalLabel: Optional[str] = None

class RequestDetails(BaseModel):
    requestDetails: CalculationRequestRead
    calculationResults: GoalCalculationRead

class PlanResponse(RequestDetails):
    plan: GoalPlan

# --- Helpers ---

async def _details(planner: GoalPlanner, request_id: UUID) -> RequestDetails:
    record = await planner.store.get_request(request_id)
    if record is None:
        logger.warning(f"User request not found for ID: {request_id}")
        raise HTTPException(status_code=404, detail="Request not found.")
    calculation = await planner.store.get_calculation(request_id)
    if calculation is None:
        logger.warning(f"Request {request_id} found, but no associated calculation.")
        raise HTTPException(status_code=404, detail="Calculation results not found for this request.")
    return RequestDetails(
        requestDetails=CalculationRequestRead.model_validate(record, from_attributes=True),
        calculationResults=GoalCalculationRead.model_validate(calculation, from_attributes=True),
    )

async def _plan_response(planner: GoalPlanner, plan: GoalPlan) -> PlanResponse:
    try:
        details = await _details(planner, plan.requestId)
    except HTTPException:
        logger.error(f"Calculation not found for newly created request: {plan.requestId}.")
        raise HTTPException(status_code=500, detail="Calculation results could not be retrieved for the new request.")
    return PlanResponse(requestDetails=details.requestDetails, calculationResults=details.calculationResults, plan=plan)

# --- Endpoints ---

@router.post("/calculate-and-save", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def calculate_sip_from_future_value(
    request_in: CalculateAndSaveRequest,
    planner: GoalPlanner = Depends(deps.get_goal_planner),
) -> Any:
    """
    Primary flow: the user names a target future value and horizon, and gets
    the monthly SIP needed, the blended rate and the 50/30/20 allocation.
    """
    logger.info(f"Received request to calculate SIP from FV: {request_in}")
    try:
        plan = await planner.plan_from_target(request_in.futureValue, request_in.timePeriodYears, request_in.goalLabel)
    except InvalidPlanInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _plan_response(planner, plan)

@router.post("/calculate-fv-from-sip", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def calculate_future_value_from_sip(
    request_in: CalculateFvFromSipRequest,
    planner: GoalPlanner = Depends(deps.get_goal_planner),
) -> Any:
    """
    What-if flow: the user picks a monthly SIP and gets the projected value,
    plus shortfall and recommendations against their original target if given.
    """
    logger.info(f"Received request to calculate FV from SIP: {request_in}")
    try:
        plan = await planner.plan_from_contribution(
            request_in.monthlySipAmount,
            request_in.timePeriodYears,
            request_in.originalTargetFutureValue,
            request_in.goalLabel,
        )
    except InvalidPlanInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await _plan_response(planner, plan)

@router.get("/{request_id}", response_model=RequestDetails)
async def get_request_details(
    request_id: UUID,
    planner: GoalPlanner = Depends(deps.get_goal_planner),
) -> Any:
    return await _details(planner, request_id)

@router.get("/{request_id}/scheme-suggestions", response_model=List[AllocationSuggestion])
async def get_scheme_suggestions(
    request_id: UUID,
    planner: GoalPlanner = Depends(deps.get_goal_planner),
) -> Any:
    plan = await planner.rebuild_plan(request_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Request not found.")
    if plan.monthlyInvestment is None:
        logger.warning(f"No monthly SIP could be determined for allocation of request {request_id}")
        raise HTTPException(status_code=400, detail="Could not determine target monthly SIP for allocation.")
    return plan.allocation

@router.get("/{request_id}/plan", response_model=GoalPlan)
async def get_plan(
    request_id: UUID,
    planner: GoalPlanner = Depends(deps.get_goal_planner),
) -> Any:
    """
    Full plan bundle (request, result, allocation, projections, recommendations)
    as consumed by report renderers.
    """
    plan = await planner.rebuild_plan(request_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Request not found.")
    return plan
