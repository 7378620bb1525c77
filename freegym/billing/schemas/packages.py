"""Membership Package Schemas"""
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from freegym.billing.models import PackageType


class PackageCreate(BaseModel):
    type: PackageType
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    credits: int = Field(..., gt=0)
    validity_days: int = Field(..., gt=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"type": "monthly", "price": "40.00", "credits": 12, "validity_days": 30}
        }
    )


class PackageRead(BaseModel):
    id: int
    type: PackageType
    price: Decimal
    credits: int
    validity_days: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PackageListResponse(BaseModel):
    packages: List[PackageRead]
