"""Payment Router - member purchase requests"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud.payments import (
    get_member_payments,
    payment_to_read,
    request_payment,
)
from freegym.billing.schemas.payments import PaymentCreate, PaymentListResponse, PaymentRead
from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member
from freegym.core.limits import limiter
from freegym.members.models import Member

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def create_payment_request(
    request: Request,
    payment_request: PaymentCreate,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """
    Request a membership package.

    The request stays pending until an administrator approves or cancels
    it. Only one pending request and one active membership per member.
    """
    payment = await request_payment(
        db, member.id, payment_request.package_id, payment_request.installments
    )
    return payment_to_read(payment)


@router.get("/me", response_model=PaymentListResponse)
@limiter.limit("30/minute")
async def get_my_payments(
    request: Request,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    return await get_member_payments(db, member.id)
