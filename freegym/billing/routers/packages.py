"""Package Router - membership catalog"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud.packages import create_package, list_active_packages
from freegym.billing.schemas.packages import PackageCreate, PackageListResponse, PackageRead
from freegym.core.database import get_session
from freegym.core.dependencies import require_admin
from freegym.core.limits import limiter
from freegym.members.models import Member

router = APIRouter(tags=["Packages"])


@router.get("/packages", response_model=PackageListResponse)
@limiter.limit("60/minute")
async def get_packages(
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    """Active membership packages, cheapest first"""
    packages = await list_active_packages(db)
    return PackageListResponse(
        packages=[PackageRead.model_validate(package) for package in packages]
    )


@router.post(
    "/admin/packages", response_model=PackageRead, status_code=status.HTTP_201_CREATED
)
@limiter.limit("20/minute")
async def add_package(
    request: Request,
    package: PackageCreate,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await create_package(db, package)
