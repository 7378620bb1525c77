from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import get_session
from freegym.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from freegym.core.jwt_auth import jwt_manager
from freegym.members.crud.members import get_member
from freegym.members.models import Member, MemberRole

security = HTTPBearer(
    scheme_name="Member access token",
    description="JWT issued by the identity service",
    auto_error=False,
)


async def get_current_member(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_session),
) -> Member:
    """Member identified by the bearer token"""
    if not credentials or not credentials.credentials.strip():
        raise AuthenticationError("Authentication data is required")

    payload = jwt_manager.decode_token(credentials.credentials)

    member = await get_member(db, payload["member_id"])
    if not member:
        raise NotFoundError("Member", str(payload["member_id"]))
    return member


async def require_admin(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_admin:
        raise AuthorizationError("Administrator role required")
    return member


async def require_trainer(member: Member = Depends(get_current_member)) -> Member:
    if member.role != MemberRole.trainer:
        raise AuthorizationError("Trainer role required")
    return member
