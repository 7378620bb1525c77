"""Admin Payment Router - approval queue and revenue"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud.payments import (
    decide_payment,
    get_pending_payments,
    get_revenue_stats,
)
from freegym.billing.schemas.payments import (
    PaymentDecisionRequest,
    PaymentDecisionResponse,
    PendingPaymentListResponse,
    RevenueStats,
)
from freegym.core.database import get_session
from freegym.core.dependencies import require_admin
from freegym.core.limits import limiter
from freegym.members.models import Member

router = APIRouter(prefix="/admin/payments", tags=["Admin Payments"])


@router.get("/pending", response_model=PendingPaymentListResponse)
@limiter.limit("30/minute")
async def list_pending_payments(
    request: Request,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Pending requests, oldest first; ``is_expired`` flags lapsed ones"""
    return await get_pending_payments(db)


@router.get("/revenue", response_model=RevenueStats)
@limiter.limit("30/minute")
async def revenue(
    request: Request,
    months: int = Query(6, ge=1, le=24, description="Number of months to include"),
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await get_revenue_stats(db, months)


@router.post("/{payment_id}/decision", response_model=PaymentDecisionResponse)
@limiter.limit("30/minute")
async def decide(
    request: Request,
    payment_id: int,
    body: PaymentDecisionRequest,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """
    Approve or cancel a pending payment.

    Approval activates the member's membership and completes a pending
    referral. Deciding an already decided payment fails with NOT_PENDING.
    """
    return await decide_payment(db, payment_id, body.decision, admin.id)
