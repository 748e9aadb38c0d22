"""
Consumption API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from elkartea.api.deps import get_db, get_current_user, get_debt_service, TREASURER_FUNCTIONS
from elkartea.application.consumptions import (
    CancelConsumptionUseCase,
    ConsumptionAccessError,
    ConsumptionNotFoundError,
    ConsumptionValidationError,
    RecordConsumptionUseCase,
)
from elkartea.application.debt_calculation import DebtCalculationService
from elkartea.infrastructure.db.models import Consumption, User


router = APIRouter(prefix="/api/v1/consumptions", tags=["consumptions"])


class ConsumptionCreate(BaseModel):
    total_amount: str  # Decimal as string
    notes: str | None = None


class ConsumptionResponse(BaseModel):
    id: int
    user_id: int
    total_amount: str
    status: str
    notes: str | None
    created_at: datetime | None


def _to_response(c: Consumption) -> ConsumptionResponse:
    return ConsumptionResponse(
        id=c.id,
        user_id=c.user_id,
        total_amount=str(c.total_amount),
        status=c.status,
        notes=c.notes,
        created_at=c.created_at,
    )


@router.post("/", response_model=ConsumptionResponse, status_code=201)
def record_consumption(
    req: ConsumptionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: DebtCalculationService = Depends(get_debt_service),
):
    """Record a bar tab for the logged-in member"""
    try:
        consumption_id = RecordConsumptionUseCase(db, service).execute(
            user_id=user.id,
            society_id=user.society_id,
            total_amount=req.total_amount,
            notes=req.notes,
        )
    except ConsumptionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(db.get(Consumption, consumption_id))


@router.post("/{consumption_id}/cancel", response_model=ConsumptionResponse)
def cancel_consumption(
    consumption_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: DebtCalculationService = Depends(get_debt_service),
):
    """Cancel a consumption (own ones; treasurers may cancel any)"""
    owner_id = None if user.function in TREASURER_FUNCTIONS else user.id
    try:
        CancelConsumptionUseCase(db, service).execute(consumption_id, user.society_id, owner_id=owner_id)
    except ConsumptionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConsumptionAccessError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ConsumptionValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(db.get(Consumption, consumption_id))
