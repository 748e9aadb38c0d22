"""
Monthly debt calculation: one Credit row per member per month.

For every active member of the active society the service adds up:
  - bar consumptions of the month (cancelled excluded)
  - reservations of the month (cancelled excluded)
  - kitchen fee × number of kitchen reservations of the month
  - subscription fee, when the month is a charge point of the member's subscription

and upserts the result keyed by (member, society, "YYYY-MM"). Re-running a
month only rewrites the amounts; status and payment marking are kept.
Months with a zero total are not written.

Entry points:
  - calculate_monthly_debts(year, month): scheduler / treasurer trigger
  - calculate_current_month_debts(): real-time hook after consumption/reservation changes
  - check_and_run_catchup_calculation(): startup check for a skipped previous month
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache
from typing import Callable
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from elkartea.config import get_settings
from elkartea.domain.billing_period import month_label, month_bounds, previous_month, to_utc
from elkartea.domain.subscription_charge import subscription_charge, ZERO
from elkartea.infrastructure.db.models import (
    Society, User, SubscriptionType, Consumption, Reservation, Credit,
)
from elkartea.infrastructure.db.session import session_scope

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"
_CENT = Decimal("0.01")


class DebtCalculationError(Exception):
    pass


class NoActiveSocietyError(DebtCalculationError):
    def __init__(self):
        super().__init__("No active society found")


class MemberProcessingError(DebtCalculationError):
    def __init__(self, member_id: int, member_name: str | None):
        self.member_id = member_id
        self.member_name = member_name
        super().__init__(f"Error processing member {member_name} (id={member_id})")


class SubscriptionLookupError(DebtCalculationError):
    pass


class SingleFlightGuard:
    """Lets one calculation in at a time; a second caller is turned away, not queued."""

    def __init__(self):
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()


@dataclass
class MemberDebt:
    consumption_amount: Decimal
    reservation_amount: Decimal
    kitchen_amount: Decimal
    subscription_amount: Decimal

    @property
    def total_amount(self) -> Decimal:
        return (
            self.consumption_amount
            + self.reservation_amount
            + self.kitchen_amount
            + self.subscription_amount
        )


@dataclass
class DebtCalculationSummary:
    month: str
    members_total: int
    processed: int = 0
    written: int = 0
    total_amount: Decimal = ZERO
    failed_member_ids: list[int] = field(default_factory=list)


def _money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def society_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def society_now() -> datetime:
    return datetime.now(society_tz())


class DebtCalculationService:
    """
    Args:
        session_factory: sessionmaker for the calculation's own sessions
            (defaults to the application factory)
        guard: single-flight guard shared by everything that may start a run
        clock: returns "now" in the society's time zone
        tz: the society's time zone, month bounds are local to it
    """

    def __init__(
        self,
        session_factory=None,
        guard: SingleFlightGuard | None = None,
        clock: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
    ):
        self._session_factory = session_factory
        self.guard = guard or SingleFlightGuard()
        self._clock = clock or society_now
        self._tz = tz or society_tz()

    @property
    def is_running(self) -> bool:
        return self.guard.is_running

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def calculate_monthly_debts(self, year: int, month: int) -> DebtCalculationSummary | None:
        """
        Recalculate every active member's credit for the month.

        Returns None when another calculation is already running.

        Raises:
            NoActiveSocietyError: no society is marked active
        """
        label = month_label(year, month)
        if not self.guard.try_acquire():
            logger.info("Debt calculation already in progress, skipping %s", label)
            return None

        try:
            logger.info("Starting debt calculation for %s", label)
            with session_scope(self._session_factory) as db:
                return self._calculate(db, year, month)
        finally:
            self.guard.release()

    def calculate_current_month_debts(self) -> None:
        """Real-time hook: recalculates the open month, never raises."""
        now = self._clock()
        logger.info(
            "Triggering real-time debt calculation for current month: %s",
            month_label(now.year, now.month),
        )
        try:
            self.calculate_monthly_debts(now.year, now.month)
        except Exception:
            logger.exception("Real-time debt calculation failed")

    def check_and_run_catchup_calculation(self) -> None:
        """Run the previous month if it has no credits at all. Never raises."""
        now = self._clock()
        year, month = previous_month(now.year, now.month)
        label = month_label(year, month)
        logger.info("Checking for catch-up debt calculation for month: %s", label)

        try:
            with session_scope(self._session_factory) as db:
                existing = db.query(Credit.id).filter(
                    Credit.month == label,
                    Credit.year == year,
                ).first()
            if existing is not None:
                logger.info("Debt calculation already exists for %s, skipping catch-up", label)
                return

            logger.info("No debt calculation found for %s, running catch-up calculation", label)
            self.calculate_monthly_debts(year, month)
        except Exception:
            logger.exception("Catch-up debt calculation failed for %s", label)

    def calculate_subscription_charge(
        self, member_id: int, society_id: int, year: int, month: int,
    ) -> Decimal:
        """Subscription fee due by the member in the month (0 when not a charge point)."""
        with session_scope(self._session_factory) as db:
            return self._subscription_charge(db, member_id, society_id, year, month)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def _calculate(self, db: Session, year: int, month: int) -> DebtCalculationSummary:
        society = db.query(Society).filter(
            Society.is_active == True,  # noqa: E712
        ).order_by(Society.id).first()
        if society is None:
            raise NoActiveSocietyError()
        society_id = society.id
        kitchen_fee = _money(society.kitchen_price_per_member)

        # Plain rows: they survive the rollback of a failed member
        members = db.query(User.id, User.name, User.username).filter(
            User.society_id == society_id,
            User.is_active == True,  # noqa: E712
        ).order_by(User.id).all()
        logger.info("Found %d members to process", len(members))

        start, end = (to_utc(b, self._tz) for b in month_bounds(year, month, self._tz))
        summary = DebtCalculationSummary(month=month_label(year, month), members_total=len(members))

        for member_id, name, username in members:
            try:
                debt = self._process_member(
                    db, member_id, name or username, society_id, kitchen_fee,
                    year, month, start, end,
                )
            except MemberProcessingError:
                db.rollback()
                logger.exception("Error processing member %s (id=%d)", name or username, member_id)
                summary.failed_member_ids.append(member_id)
                continue

            summary.processed += 1
            summary.total_amount += debt.total_amount
            if debt.total_amount > 0:
                summary.written += 1

        logger.info(
            "Debt calculation completed for %s: total=%s, processed=%d/%d, failed=%d",
            summary.month,
            summary.total_amount,
            summary.processed,
            summary.members_total,
            len(summary.failed_member_ids),
        )
        return summary

    def _process_member(
        self,
        db: Session,
        member_id: int,
        member_name: str | None,
        society_id: int,
        kitchen_fee: Decimal,
        year: int,
        month: int,
        start: datetime,
        end: datetime,
    ) -> MemberDebt:
        try:
            kitchen_uses = self._count_kitchen_uses(db, member_id, society_id, start, end)
            debt = MemberDebt(
                consumption_amount=self._sum_consumptions(db, member_id, society_id, start, end),
                reservation_amount=self._sum_reservations(db, member_id, society_id, start, end),
                kitchen_amount=_money(kitchen_uses * kitchen_fee),
                subscription_amount=self._subscription_charge(db, member_id, society_id, year, month),
            )
            if debt.total_amount > 0:
                self._upsert_credit(db, member_id, society_id, year, month, debt)
                db.commit()
                logger.info(
                    "Updated %s: %s (consumption: %s, reservation: %s, kitchen: %s, subscription: %s)",
                    member_name,
                    debt.total_amount,
                    debt.consumption_amount,
                    debt.reservation_amount,
                    debt.kitchen_amount,
                    debt.subscription_amount,
                )
            return debt
        except Exception as exc:
            raise MemberProcessingError(member_id, member_name) from exc

    def _sum_consumptions(
        self, db: Session, member_id: int, society_id: int, start: datetime, end: datetime,
    ) -> Decimal:
        total = db.query(func.coalesce(func.sum(Consumption.total_amount), 0)).filter(
            Consumption.user_id == member_id,
            Consumption.society_id == society_id,
            Consumption.created_at >= start,
            Consumption.created_at <= end,
            Consumption.status != CANCELLED,
        ).scalar()
        return _money(total)

    def _sum_reservations(
        self, db: Session, member_id: int, society_id: int, start: datetime, end: datetime,
    ) -> Decimal:
        total = db.query(func.coalesce(func.sum(Reservation.total_amount), 0)).filter(
            Reservation.user_id == member_id,
            Reservation.society_id == society_id,
            Reservation.start_date >= start,
            Reservation.start_date <= end,
            Reservation.status != CANCELLED,
        ).scalar()
        return _money(total)

    def _count_kitchen_uses(
        self, db: Session, member_id: int, society_id: int, start: datetime, end: datetime,
    ) -> int:
        count = db.query(func.count(Reservation.id)).filter(
            Reservation.user_id == member_id,
            Reservation.society_id == society_id,
            Reservation.use_kitchen == True,  # noqa: E712
            Reservation.start_date >= start,
            Reservation.start_date <= end,
            Reservation.status != CANCELLED,
        ).scalar()
        return count or 0

    def _subscription_charge(
        self, db: Session, member_id: int, society_id: int, year: int, month: int,
    ) -> Decimal:
        try:
            subscription_type = self._load_subscription(db, member_id, society_id)
        except SubscriptionLookupError:
            logger.exception(
                "Error calculating subscription charge for member id=%d, %s",
                member_id, month_label(year, month),
            )
            return ZERO
        return subscription_charge(subscription_type, month)

    def _load_subscription(
        self, db: Session, member_id: int, society_id: int,
    ) -> SubscriptionType | None:
        # A failed lookup rolls back to the savepoint, the member's transaction stays usable
        try:
            with db.begin_nested():
                subscription_type_id = db.query(User.subscription_type_id).filter(
                    User.id == member_id,
                ).scalar()
                if subscription_type_id is None:
                    return None
                return db.query(SubscriptionType).filter(
                    SubscriptionType.id == subscription_type_id,
                    SubscriptionType.society_id == society_id,
                ).first()
        except SQLAlchemyError as exc:
            raise SubscriptionLookupError(
                f"Subscription lookup failed for member id={member_id}"
            ) from exc

    def _upsert_credit(
        self,
        db: Session,
        member_id: int,
        society_id: int,
        year: int,
        month: int,
        debt: MemberDebt,
    ) -> Credit:
        label = month_label(year, month)
        now = self._clock()
        credit = db.query(Credit).filter(
            Credit.member_id == member_id,
            Credit.society_id == society_id,
            Credit.month == label,
        ).first()

        if credit is None:
            credit = Credit(
                member_id=member_id,
                society_id=society_id,
                month=label,
                year=year,
                month_number=month,
                status="pending",
                paid_amount=ZERO,
                calculated_at=now,
            )
            db.add(credit)

        credit.consumption_amount = debt.consumption_amount
        credit.reservation_amount = debt.reservation_amount
        credit.kitchen_amount = debt.kitchen_amount
        credit.subscription_amount = debt.subscription_amount
        credit.total_amount = debt.total_amount
        credit.updated_at = now
        db.flush()
        return credit


@lru_cache
def get_debt_calculation_service() -> DebtCalculationService:
    """Process-wide service (one guard for the scheduler, API and hooks)"""
    return DebtCalculationService()
