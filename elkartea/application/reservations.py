"""
Reservation use cases: table bookings, optionally with kitchen use.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from elkartea.application.debt_calculation import DebtCalculationService, society_tz
from elkartea.domain.billing_period import to_utc
from elkartea.infrastructure.db.models import Reservation


class ReservationValidationError(ValueError):
    pass


class ReservationNotFoundError(ReservationValidationError):
    pass


class ReservationAccessError(ReservationValidationError):
    pass


class CreateReservationUseCase:
    def __init__(self, db: Session, debt_service: DebtCalculationService):
        self.db = db
        self.debt_service = debt_service

    def execute(
        self,
        user_id: int,
        society_id: int,
        start_date: datetime,
        total_amount="0",
        guests: int = 1,
        use_kitchen: bool = False,
    ) -> int:
        try:
            amount = Decimal(str(total_amount))
        except (InvalidOperation, ValueError):
            raise ReservationValidationError("Invalid amount")
        if amount < 0:
            raise ReservationValidationError("Amount cannot be negative")
        if guests < 1:
            raise ReservationValidationError("At least one guest is required")

        reservation = Reservation(
            user_id=user_id,
            society_id=society_id,
            start_date=to_utc(start_date, society_tz()),
            total_amount=amount.quantize(Decimal("0.01")),
            guests=guests,
            use_kitchen=use_kitchen,
            status="confirmed",
        )
        self.db.add(reservation)
        self.db.flush()
        reservation_id = reservation.id
        self.db.commit()

        self.debt_service.calculate_current_month_debts()
        return reservation_id


class CancelReservationUseCase:
    def __init__(self, db: Session, debt_service: DebtCalculationService):
        self.db = db
        self.debt_service = debt_service

    def execute(self, reservation_id: int, society_id: int, owner_id: int | None = None) -> None:
        reservation = self.db.query(Reservation).filter(
            Reservation.id == reservation_id,
            Reservation.society_id == society_id,
        ).first()
        if not reservation:
            raise ReservationNotFoundError("Reservation not found")
        if owner_id is not None and reservation.user_id != owner_id:
            raise ReservationAccessError("You can only cancel your own reservations")
        if reservation.status == "cancelled":
            raise ReservationValidationError("Reservation already cancelled")
        reservation.status = "cancelled"
        self.db.commit()

        self.debt_service.calculate_current_month_debts()
