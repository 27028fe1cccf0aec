"""
Loyalty API Endpoints.

Outlet configuration plus earning, redeeming and history of loyalty points.
"""

from decimal import Decimal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from bizos.app.db.session import get_db
from bizos.app.core.guards import require_capability
from bizos.app.core.policy import Capability
from bizos.app.domain.loyalty.loyalty_service import LoyaltyService, create_outlet as create_outlet_record
from bizos.app.models.contact import Contact
from bizos.app.schemas.loyalty import (
    OutletCreate, OutletResponse, EarnPointsRequest, EarnPointsResponse,
    RedeemPointsRequest, RedeemPointsResponse, LoyaltyLogResponse,
    LoyaltyHistoryResponse, RedemptionValueResponse
)
from bizos.app.services.audit import log_user_action, AuditAction

outlet_router = APIRouter(prefix="/outlets", tags=["Outlets"])
router = APIRouter(prefix="/loyalty", tags=["Loyalty"])


async def _points_balance(db: AsyncSession, customer_id: int) -> Decimal:
    customer = await db.get(Contact, customer_id)
    return customer.loyalty_points


@outlet_router.post("", response_model=OutletResponse, status_code=status.HTTP_201_CREATED)
async def create_outlet(
    outlet_data: OutletCreate,
    current_user: dict = Depends(require_capability(Capability.USERS_MANAGE)),
    db: AsyncSession = Depends(get_db)
):
    """Create an outlet with its loyalty configuration."""
    outlet = await create_outlet_record(
        db,
        name=outlet_data.name,
        address=outlet_data.address,
        is_loyalty_enabled=outlet_data.is_loyalty_enabled,
        loyalty_earning_rate=outlet_data.loyalty_earning_rate,
        loyalty_redemption_rate=outlet_data.loyalty_redemption_rate,
        tax_rate=outlet_data.tax_rate
    )
    await log_user_action(
        db, current_user, AuditAction.OUTLET_CREATED, "Outlet", outlet.id,
        metadata={"name": outlet.name}
    )
    return OutletResponse.model_validate(outlet)


@router.post("/earn", response_model=EarnPointsResponse)
async def earn_points(
    request: EarnPointsRequest,
    current_user: dict = Depends(require_capability(Capability.LOYALTY_EARN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Award points for a payment.

    ``earned`` is False when the outlet does not award points.
    """
    log = await LoyaltyService.earn_points(
        db,
        sale_id=request.sale_id,
        customer_id=request.customer_id,
        outlet_id=request.outlet_id,
        amount_paid=request.amount_paid
    )

    if log is None:
        return EarnPointsResponse(
            earned=False,
            points=Decimal("0"),
            balance=await _points_balance(db, request.customer_id)
        )

    await log_user_action(
        db, current_user, AuditAction.POINTS_EARNED, "Contact", request.customer_id,
        metadata={"points": str(log.points), "outlet_id": request.outlet_id, "sale_id": request.sale_id}
    )
    return EarnPointsResponse(
        earned=True,
        points=log.points,
        log_id=log.id,
        balance=await _points_balance(db, request.customer_id)
    )


@router.post("/redeem", response_model=RedeemPointsResponse)
async def redeem_points(
    request: RedeemPointsRequest,
    current_user: dict = Depends(require_capability(Capability.LOYALTY_REDEEM)),
    db: AsyncSession = Depends(get_db)
):
    """
    Redeem points for their currency value at the outlet.

    Raises:
        400: Insufficient points (ERR_LOYALTY_001) or non-positive points
        404: Unknown customer or outlet
    """
    value = await LoyaltyService.redeem_points(
        db,
        customer_id=request.customer_id,
        outlet_id=request.outlet_id,
        points_to_redeem=request.points,
        sale_id=request.sale_id
    )
    await log_user_action(
        db, current_user, AuditAction.POINTS_REDEEMED, "Contact", request.customer_id,
        metadata={"points": str(request.points), "value": str(value), "outlet_id": request.outlet_id}
    )
    return RedeemPointsResponse(
        points_redeemed=request.points,
        value=value,
        balance=await _points_balance(db, request.customer_id)
    )


@router.get("/redemption-value", response_model=RedemptionValueResponse)
async def get_redemption_value(
    outlet_id: int = Query(..., description="Outlet ID"),
    points: Decimal = Query(..., description="Points to value"),
    current_user: dict = Depends(require_capability(Capability.LOYALTY_REDEEM)),
    db: AsyncSession = Depends(get_db)
):
    """Currency value of a number of points at an outlet."""
    value = await LoyaltyService.calculate_redemption_value(db, outlet_id, points)
    return RedemptionValueResponse(outlet_id=outlet_id, points=points, value=value)


@router.get("/{customer_id}/history", response_model=LoyaltyHistoryResponse)
async def get_history(
    customer_id: int,
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_capability(Capability.CUSTOMERS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Loyalty activity for a customer, newest first."""
    logs = await LoyaltyService.get_loyalty_history(db, customer_id, limit=limit)
    return LoyaltyHistoryResponse(
        customer_id=customer_id,
        logs=[LoyaltyLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
