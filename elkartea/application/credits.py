"""
Credit ledger use cases: listings, totals and treasurer payment marking.

Amounts are owned by DebtCalculationService; this module only changes status.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import func
from sqlalchemy.orm import Session

from elkartea.application.debt_calculation import society_now
from elkartea.domain.billing_period import month_label
from elkartea.infrastructure.db.models import Credit, User

CREDIT_STATUSES = ("pending", "paid", "partial")
LEGACY_PAID_MARKER = "Unknown (legacy)"


class CreditValidationError(ValueError):
    pass


class CreditNotFoundError(LookupError):
    pass


def list_member_credits(
    db: Session, member_id: int, month: str | None = None, status: str | None = None,
) -> list[Credit]:
    q = db.query(Credit).filter(Credit.member_id == member_id)
    if month:
        q = q.filter(Credit.month == month)
    if status and status != "all":
        q = q.filter(Credit.status == status)
    return q.order_by(Credit.year.desc(), Credit.month_number.desc()).all()


def list_credits(
    db: Session, society_id: int, month: str | None = None, status: str | None = None,
) -> list[dict]:
    """Society credits with member name and who marked them paid."""
    q = db.query(Credit).filter(Credit.society_id == society_id)
    if month:
        q = q.filter(Credit.month == month)
    if status:
        q = q.filter(Credit.status == status)
    credits = q.order_by(Credit.year, Credit.month_number, Credit.member_id).all()

    # Preload user names
    user_ids = {c.member_id for c in credits} | {c.marked_as_paid_by for c in credits if c.marked_as_paid_by}
    names = {}
    if user_ids:
        users = db.query(User).filter(User.id.in_(user_ids)).all()
        names = {u.id: u.name or u.username for u in users}

    rows = []
    for c in credits:
        if c.marked_as_paid_by:
            marked_by = names.get(c.marked_as_paid_by)
        elif c.status == "paid":
            # paid before payment tracking existed
            marked_by = LEGACY_PAID_MARKER
        else:
            marked_by = None
        rows.append({
            "credit": c,
            "member_name": names.get(c.member_id, "Unknown"),
            "marked_by_name": marked_by,
        })
    return rows


def sum_credits(db: Session, society_id: int, status: str | None = None) -> Decimal:
    q = db.query(func.coalesce(func.sum(Credit.total_amount), 0)).filter(
        Credit.society_id == society_id,
    )
    if status in CREDIT_STATUSES:
        q = q.filter(Credit.status == status)
    return Decimal(str(q.scalar())).quantize(Decimal("0.01"))


class BatchUpdateCreditStatusUseCase:
    """
    Args:
        clock: "now" in the society's time zone, which decides the open month
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None):
        self.db = db
        self._clock = clock or society_now

    def execute(
        self,
        society_id: int,
        credit_ids: list[int],
        status: str,
        actor_user_id: int,
        today: date | None = None,
    ) -> list[Credit]:
        if status not in CREDIT_STATUSES:
            raise CreditValidationError("Invalid status")
        if not credit_ids:
            raise CreditValidationError("Invalid credit IDs")
        now = self._clock()
        if today is None:
            today = now.date()

        credits = self.db.query(Credit).filter(
            Credit.id.in_(credit_ids),
            Credit.society_id == society_id,
        ).all()
        if not credits:
            raise CreditNotFoundError("No credits found")

        if status == "paid":
            # The open month keeps accruing, it cannot be closed yet
            current = month_label(today.year, today.month)
            if any(c.month == current for c in credits):
                raise CreditValidationError(
                    "The current month cannot be closed. Wait until the month ends."
                )

        for c in credits:
            c.status = status
            c.updated_at = now
            if status == "paid":
                c.marked_as_paid_by = actor_user_id
                c.marked_as_paid_at = now
        self.db.commit()
        return credits
