"""
Credit (monthly debt) API endpoints
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from elkartea.api.deps import get_db, get_current_user, require_treasurer, get_debt_service
from elkartea.application.credits import (
    BatchUpdateCreditStatusUseCase,
    CreditNotFoundError,
    CreditValidationError,
    list_credits,
    list_member_credits,
    sum_credits,
)
from elkartea.application.debt_calculation import DebtCalculationService, NoActiveSocietyError
from elkartea.infrastructure.db.models import Credit, User


router = APIRouter(prefix="/api/v1/credits", tags=["credits"])


# === Request/Response models ===

class CreditResponse(BaseModel):
    id: int
    member_id: int
    month: str
    year: int
    month_number: int
    consumption_amount: str  # Decimal as string
    reservation_amount: str
    kitchen_amount: str
    subscription_amount: str
    total_amount: str
    paid_amount: str
    status: str
    member_name: str | None = None
    marked_by_name: str | None = None


class BatchStatusRequest(BaseModel):
    credit_ids: list[int]
    status: str


class BatchStatusResponse(BaseModel):
    message: str
    updated_credits: list[CreditResponse]


class RecalculateRequest(BaseModel):
    year: int
    month: int

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: int) -> int:
        if not 1 <= v <= 12:
            raise ValueError("month must be between 1 and 12")
        return v


class RecalculateResponse(BaseModel):
    skipped: bool
    month: str | None = None
    processed: int = 0
    members_total: int = 0
    written: int = 0
    total_amount: str = "0.00"
    failed_member_ids: list[int] = []


# === Helper functions ===

def _amount(value) -> str:
    return str(Decimal(str(value)).quantize(Decimal("0.01")))


def _to_response(c: Credit, member_name: str | None = None, marked_by_name: str | None = None) -> CreditResponse:
    return CreditResponse(
        id=c.id,
        member_id=c.member_id,
        month=c.month,
        year=c.year,
        month_number=c.month_number,
        consumption_amount=_amount(c.consumption_amount),
        reservation_amount=_amount(c.reservation_amount),
        kitchen_amount=_amount(c.kitchen_amount),
        subscription_amount=_amount(c.subscription_amount),
        total_amount=_amount(c.total_amount),
        paid_amount=_amount(c.paid_amount),
        status=c.status,
        member_name=member_name,
        marked_by_name=marked_by_name,
    )


# === Endpoints ===

@router.get("/me", response_model=list[CreditResponse])
def my_credits(
    month: str | None = None,
    status: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Credits of the logged-in member, newest month first"""
    credits = list_member_credits(db, user.id, month=month, status=status)
    return [_to_response(c) for c in credits]


@router.get("/sum")
def credits_sum(
    status: str | None = None,
    user: User = Depends(require_treasurer),
    db: Session = Depends(get_db),
):
    """Total of the society's credits, optionally by status"""
    return {"sum": str(sum_credits(db, user.society_id, status=status))}


@router.get("/", response_model=list[CreditResponse])
def all_credits(
    month: str | None = None,
    status: str | None = None,
    user: User = Depends(require_treasurer),
    db: Session = Depends(get_db),
):
    """All credits of the society (treasurer)"""
    rows = list_credits(db, user.society_id, month=month, status=status)
    return [
        _to_response(r["credit"], r["member_name"], r["marked_by_name"])
        for r in rows
    ]


@router.put("/batch-status", response_model=BatchStatusResponse)
def batch_update_status(
    req: BatchStatusRequest,
    user: User = Depends(require_treasurer),
    db: Session = Depends(get_db),
):
    """Mark several credits as pending / paid / partial"""
    try:
        updated = BatchUpdateCreditStatusUseCase(db).execute(
            society_id=user.society_id,
            credit_ids=req.credit_ids,
            status=req.status,
            actor_user_id=user.id,
        )
    except CreditValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CreditNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return BatchStatusResponse(
        message=f"Updated {len(updated)} credits",
        updated_credits=[_to_response(c) for c in updated],
    )


@router.post("/recalculate", response_model=RecalculateResponse)
def recalculate(
    req: RecalculateRequest,
    user: User = Depends(require_treasurer),
    service: DebtCalculationService = Depends(get_debt_service),
):
    """Run the debt calculation for a month on demand"""
    try:
        summary = service.calculate_monthly_debts(req.year, req.month)
    except NoActiveSocietyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if summary is None:
        return RecalculateResponse(skipped=True)
    return RecalculateResponse(
        skipped=False,
        month=summary.month,
        processed=summary.processed,
        members_total=summary.members_total,
        written=summary.written,
        total_amount=_amount(summary.total_amount),
        failed_member_ids=summary.failed_member_ids,
    )
