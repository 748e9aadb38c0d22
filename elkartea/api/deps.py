"""
FastAPI dependencies (DB session, authentication, debt service)
"""
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from elkartea.application.debt_calculation import DebtCalculationService, get_debt_calculation_service
from elkartea.infrastructure.db.session import get_db as _get_db
from elkartea.infrastructure.db.models import User


# Re-export get_db for convenience
get_db = _get_db

TREASURER_FUNCTIONS = frozenset({"diruzaina", "administratzailea"})


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Current member from the session cookie

    Raises:
        HTTPException(401): not logged in or unknown user
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


def require_treasurer(user: User = Depends(get_current_user)) -> User:
    """Treasurer or administrator, otherwise 403."""
    if user.function not in TREASURER_FUNCTIONS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Treasurer access required"
        )
    return user


def get_debt_service() -> DebtCalculationService:
    return get_debt_calculation_service()
