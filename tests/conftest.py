"""
Pytest fixtures for testing
"""
import pytest
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from elkartea.application.debt_calculation import DebtCalculationService
from elkartea.domain.billing_period import to_utc
from elkartea.infrastructure.db.session import Base
from elkartea.infrastructure.db import models  # noqa: F401  (registers tables)


MADRID = ZoneInfo("Europe/Madrid")

# "Now" for every test that goes through the service clock
FIXED_NOW = datetime(2025, 12, 10, 12, 0, 0, tzinfo=MADRID)


@pytest.fixture
def db_engine():
    """In-memory SQLite shared by the test session and the service's own sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def debt_service(session_factory) -> DebtCalculationService:
    """Independent service (own guard) with a fixed clock: 2025-12-10 12:00"""
    return DebtCalculationService(
        session_factory=session_factory, clock=lambda: FIXED_NOW, tz=MADRID,
    )


# ---------------------------------------------------------------------------
# Data helpers. Everything is committed: the service works in its own sessions.
# Naive timestamps are Madrid wall-clock time, stored as UTC.
# ---------------------------------------------------------------------------

@pytest.fixture
def society(db_session):
    s = models.Society(name="Gure Txokoa", kitchen_price_per_member=Decimal("3.00"), is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def make_member(db_session):
    def _make(society, name, function="bazkidea", is_active=True, subscription_type=None):
        u = models.User(
            username=name.lower().replace(" ", "."),
            name=name,
            function=function,
            society_id=society.id,
            is_active=is_active,
            subscription_type_id=subscription_type.id if subscription_type else None,
        )
        db_session.add(u)
        db_session.commit()
        return u
    return _make


@pytest.fixture
def make_subscription_type(db_session):
    def _make(society, amount, period="monthly", period_months=1, is_active=True):
        st = models.SubscriptionType(
            society_id=society.id,
            name=f"{period} fee",
            amount=Decimal(amount),
            period=period,
            period_months=period_months,
            is_active=is_active,
        )
        db_session.add(st)
        db_session.commit()
        return st
    return _make


@pytest.fixture
def add_consumption(db_session):
    def _add(member, amount, when, status="closed"):
        c = models.Consumption(
            user_id=member.id,
            society_id=member.society_id,
            total_amount=Decimal(amount),
            status=status,
            created_at=to_utc(when, MADRID),
        )
        db_session.add(c)
        db_session.commit()
        return c
    return _add


@pytest.fixture
def add_reservation(db_session):
    def _add(member, amount, when, use_kitchen=False, status="confirmed"):
        r = models.Reservation(
            user_id=member.id,
            society_id=member.society_id,
            total_amount=Decimal(amount),
            start_date=to_utc(when, MADRID),
            use_kitchen=use_kitchen,
            status=status,
        )
        db_session.add(r)
        db_session.commit()
        return r
    return _add
