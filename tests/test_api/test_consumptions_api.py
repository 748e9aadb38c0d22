"""
Tests for Consumptions API endpoints
"""
import pytest
from datetime import datetime
from unittest.mock import Mock
from fastapi.testclient import TestClient

from elkartea.main import app
from elkartea.api.deps import get_db, get_current_user, get_debt_service
from elkartea.application.debt_calculation import DebtCalculationService


@pytest.fixture
def hook():
    return Mock(spec=DebtCalculationService)


@pytest.fixture
def client(db_session, hook):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_debt_service] = lambda: hook
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def miren(society, make_member):
    return make_member(society, "Miren Etxeberria")


@pytest.fixture
def jon(society, make_member):
    return make_member(society, "Jon Agirre")


def _login(user):
    app.dependency_overrides[get_current_user] = lambda: user


def test_record_requires_login(client, hook):
    response = client.post("/api/v1/consumptions/", json={"total_amount": "5.00"})
    assert response.status_code == 401
    hook.calculate_current_month_debts.assert_not_called()


def test_record_triggers_recalculation(client, hook, miren):
    _login(miren)

    response = client.post("/api/v1/consumptions/", json={"total_amount": "12.5", "notes": "pintxos"})

    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == miren.id
    assert data["total_amount"] == "12.50"
    assert data["status"] == "closed"
    hook.calculate_current_month_debts.assert_called_once_with()


def test_record_invalid_amount(client, hook, miren):
    _login(miren)

    response = client.post("/api/v1/consumptions/", json={"total_amount": "-3"})

    assert response.status_code == 400
    hook.calculate_current_month_debts.assert_not_called()


def test_cancel_own_consumption(client, hook, miren, add_consumption):
    c = add_consumption(miren, "9.00", datetime(2025, 12, 2, 20, 0))
    _login(miren)

    response = client.post(f"/api/v1/consumptions/{c.id}/cancel")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    hook.calculate_current_month_debts.assert_called_once_with()


def test_cancel_someone_elses_consumption(client, hook, miren, jon, add_consumption):
    c = add_consumption(miren, "9.00", datetime(2025, 12, 2, 20, 0))
    _login(jon)

    response = client.post(f"/api/v1/consumptions/{c.id}/cancel")

    assert response.status_code == 403
    hook.calculate_current_month_debts.assert_not_called()


def test_treasurer_cancels_any_consumption(client, hook, society, miren, make_member, add_consumption):
    c = add_consumption(miren, "9.00", datetime(2025, 12, 2, 20, 0))
    _login(make_member(society, "Itziar Diruzaina", function="diruzaina"))

    response = client.post(f"/api/v1/consumptions/{c.id}/cancel")

    assert response.status_code == 200
    hook.calculate_current_month_debts.assert_called_once_with()


def test_cancel_errors(client, miren, add_consumption):
    c = add_consumption(miren, "9.00", datetime(2025, 12, 2, 20, 0), status="cancelled")
    _login(miren)

    assert client.post("/api/v1/consumptions/404/cancel").status_code == 404
    assert client.post(f"/api/v1/consumptions/{c.id}/cancel").status_code == 400
