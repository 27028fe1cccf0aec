"""
Loyalty and Outlet API Schema Definitions.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from bizos.app.models.customer_enums import LoyaltyLogType


class OutletCreate(BaseModel):
    """Schema for creating an outlet."""
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    is_loyalty_enabled: bool = True
    loyalty_earning_rate: Decimal = Field(Decimal("0.05"), description="Points earned per currency unit paid")
    loyalty_redemption_rate: Decimal = Field(Decimal("1.0"), description="Currency value of one point")
    tax_rate: Decimal = Decimal("0")


class OutletResponse(BaseModel):
    """Schema for outlet response."""
    id: int
    name: str
    address: Optional[str] = None
    is_loyalty_enabled: bool
    loyalty_earning_rate: Decimal
    loyalty_redemption_rate: Decimal
    tax_rate: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class EarnPointsRequest(BaseModel):
    """Schema for earning points on a payment."""
    customer_id: int
    outlet_id: int
    amount_paid: Decimal
    sale_id: Optional[str] = Field(None, max_length=100)


class EarnPointsResponse(BaseModel):
    """Schema for earn result. ``earned`` is False when the outlet awards nothing."""
    earned: bool
    points: Decimal
    log_id: Optional[int] = None
    balance: Decimal


class RedeemPointsRequest(BaseModel):
    """Schema for redeeming points."""
    customer_id: int
    outlet_id: int
    points: Decimal
    sale_id: Optional[str] = Field(None, max_length=100)


class RedeemPointsResponse(BaseModel):
    """Schema for redemption result."""
    points_redeemed: Decimal
    value: Decimal
    balance: Decimal


class LoyaltyLogResponse(BaseModel):
    """Schema for loyalty log entry."""
    id: int
    contact_id: int
    outlet_id: Optional[int] = None
    points: Decimal
    type: LoyaltyLogType
    reference_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoyaltyHistoryResponse(BaseModel):
    """Schema for loyalty history."""
    customer_id: int
    logs: List[LoyaltyLogResponse]
    total: int


class RedemptionValueResponse(BaseModel):
    """Schema for redemption value quote."""
    outlet_id: int
    points: Decimal
    value: Decimal
