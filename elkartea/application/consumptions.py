"""
Consumption use cases: bar tabs written by members.

Every change fires the real-time debt recalculation for the open month.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from elkartea.application.debt_calculation import DebtCalculationService, society_tz
from elkartea.domain.billing_period import to_utc
from elkartea.infrastructure.db.models import Consumption


class ConsumptionValidationError(ValueError):
    pass


class ConsumptionNotFoundError(ConsumptionValidationError):
    pass


class ConsumptionAccessError(ConsumptionValidationError):
    pass


def _parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ConsumptionValidationError("Invalid amount")
    if amount < 0:
        raise ConsumptionValidationError("Amount cannot be negative")
    return amount.quantize(Decimal("0.01"))


class RecordConsumptionUseCase:
    def __init__(self, db: Session, debt_service: DebtCalculationService):
        self.db = db
        self.debt_service = debt_service

    def execute(
        self,
        user_id: int,
        society_id: int,
        total_amount,
        notes: str | None = None,
        created_at: datetime | None = None,
    ) -> int:
        consumption = Consumption(
            user_id=user_id,
            society_id=society_id,
            total_amount=_parse_amount(total_amount),
            status="closed",
            notes=notes,
        )
        if created_at is not None:
            consumption.created_at = to_utc(created_at, society_tz())
        self.db.add(consumption)
        self.db.flush()
        consumption_id = consumption.id
        self.db.commit()

        self.debt_service.calculate_current_month_debts()
        return consumption_id


class CancelConsumptionUseCase:
    def __init__(self, db: Session, debt_service: DebtCalculationService):
        self.db = db
        self.debt_service = debt_service

    def execute(self, consumption_id: int, society_id: int, owner_id: int | None = None) -> None:
        """owner_id: when given, only that member's consumption can be cancelled"""
        consumption = self.db.query(Consumption).filter(
            Consumption.id == consumption_id,
            Consumption.society_id == society_id,
        ).first()
        if not consumption:
            raise ConsumptionNotFoundError("Consumption not found")
        if owner_id is not None and consumption.user_id != owner_id:
            raise ConsumptionAccessError("You can only cancel your own consumptions")
        if consumption.status == "cancelled":
            raise ConsumptionValidationError("Consumption already cancelled")
        consumption.status = "cancelled"
        self.db.commit()

        self.debt_service.calculate_current_month_debts()
