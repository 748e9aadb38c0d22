"""
Reservation API endpoints
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from elkartea.api.deps import get_db, get_current_user, get_debt_service, TREASURER_FUNCTIONS
from elkartea.application.debt_calculation import DebtCalculationService
from elkartea.application.reservations import (
    CancelReservationUseCase,
    CreateReservationUseCase,
    ReservationAccessError,
    ReservationNotFoundError,
    ReservationValidationError,
)
from elkartea.infrastructure.db.models import Reservation, User


router = APIRouter(prefix="/api/v1/reservations", tags=["reservations"])


class ReservationCreate(BaseModel):
    start_date: datetime  # naive = society local time
    total_amount: str = "0"
    guests: int = 1
    use_kitchen: bool = False


class ReservationResponse(BaseModel):
    id: int
    user_id: int
    start_date: datetime
    total_amount: str
    guests: int
    use_kitchen: bool
    status: str


def _to_response(r: Reservation) -> ReservationResponse:
    return ReservationResponse(
        id=r.id,
        user_id=r.user_id,
        start_date=r.start_date,
        total_amount=str(r.total_amount),
        guests=r.guests,
        use_kitchen=r.use_kitchen,
        status=r.status,
    )


@router.post("/", response_model=ReservationResponse, status_code=201)
def create_reservation(
    req: ReservationCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: DebtCalculationService = Depends(get_debt_service),
):
    try:
        reservation_id = CreateReservationUseCase(db, service).execute(
            user_id=user.id,
            society_id=user.society_id,
            start_date=req.start_date,
            total_amount=req.total_amount,
            guests=req.guests,
            use_kitchen=req.use_kitchen,
        )
    except ReservationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(db.get(Reservation, reservation_id))


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: DebtCalculationService = Depends(get_debt_service),
):
    """Cancel a reservation (own ones; treasurers and administrators may cancel any)"""
    owner_id = None if user.function in TREASURER_FUNCTIONS else user.id
    try:
        CancelReservationUseCase(db, service).execute(reservation_id, user.society_id, owner_id=owner_id)
    except ReservationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ReservationAccessError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ReservationValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(db.get(Reservation, reservation_id))
