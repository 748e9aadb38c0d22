"""
SQLAlchemy ORM models (society directory, activity ledgers, credits)
"""
from decimal import Decimal
from sqlalchemy import String, DateTime, Integer, SmallInteger, TIMESTAMP, func, Boolean, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from elkartea.infrastructure.db.session import Base


# ============================================================================
# Society directory
# ============================================================================


class Society(Base):
    """
    Society (tenant): one club using the system. Exactly one is active per deployment.
    """
    __tablename__ = "societies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Flat fee charged per reservation that uses the kitchen
    kitchen_price_per_member: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        server_default="0",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class User(Base):
    """
    Society member (the person debts are charged to)
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Role inside the society: "diruzaina" (treasurer), "administratzailea", "bazkidea", ...
    function: Mapped[str | None] = mapped_column(String(64), nullable=True)

    society_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    subscription_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class SubscriptionType(Base):
    """
    Recurring membership fee. period: monthly | quarterly | yearly | custom
    """
    __tablename__ = "subscription_types"

    id: Mapped[int] = mapped_column(primary_key=True)
    society_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    period: Mapped[str] = mapped_column(String(16), nullable=False, server_default="monthly")
    # Only meaningful for custom periods; 1 for the rest
    period_months: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1, server_default="1")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )


# ============================================================================
# Activity ledgers (written by the bar and reservation screens)
# ============================================================================


class Consumption(Base):
    """Bar tab. status: open | closed | cancelled"""
    __tablename__ = "consumptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    society_id: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open", server_default="open")
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("ix_consumptions_user_society_created", "user_id", "society_id", "created_at"),
    )


class Reservation(Base):
    """Table reservation. status: pending | confirmed | cancelled"""
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    society_id: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        server_default="0",
    )
    start_date: Mapped[DateTime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    use_kitchen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("ix_reservations_user_society_start", "user_id", "society_id", "start_date"),
    )


# ============================================================================
# Credits (monthly debt ledger, built by DebtCalculationService)
# ============================================================================


class Credit(Base):
    """
    One member's debt for one month.

    The calculation only ever rewrites the amount columns; status and
    payment marking belong to the treasurer.
    """
    __tablename__ = "credits"

    id: Mapped[int] = mapped_column(primary_key=True)
    member_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    society_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)  # "YYYY-MM"
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month_number: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    consumption_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False, server_default="0")
    reservation_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False, server_default="0")
    kitchen_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False, server_default="0")
    subscription_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False, server_default="0")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False, server_default="0")

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")  # pending, paid, partial
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        server_default="0",
    )
    marked_as_paid_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    marked_as_paid_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    calculated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("member_id", "society_id", "month", name="uq_credit_member_society_month"),
    )
