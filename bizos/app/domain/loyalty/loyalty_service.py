"""
Loyalty Points Service (Domain Logic).

Customers earn points on payments at loyalty-enabled outlets and redeem
them for a currency value set per outlet. Every balance change writes a
signed LoyaltyLog row in the same database transaction.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bizos.app.core.exceptions import InsufficientPointsError, NotFoundError, ValidationError
from bizos.app.domain.ledger.posting import to_decimal, ZERO
from bizos.app.models.contact import Contact
from bizos.app.models.customer_enums import LoyaltyLogType
from bizos.app.models.loyalty_log import LoyaltyLog
from bizos.app.models.outlet import Outlet

logger = logging.getLogger("bizos.loyalty")


async def create_outlet(
    db: AsyncSession,
    name: str,
    address: Optional[str] = None,
    is_loyalty_enabled: bool = True,
    loyalty_earning_rate: Any = Decimal("0.05"),
    loyalty_redemption_rate: Any = Decimal("1.0"),
    tax_rate: Any = ZERO
) -> Outlet:
    if not name or not name.strip():
        raise ValidationError("Outlet name is required")

    earning_rate = to_decimal(loyalty_earning_rate, "loyalty_earning_rate")
    redemption_rate = to_decimal(loyalty_redemption_rate, "loyalty_redemption_rate")
    if earning_rate < 0 or redemption_rate < 0:
        raise ValidationError("Loyalty rates must be non-negative")

    outlet = Outlet(
        name=name.strip(),
        address=address,
        is_loyalty_enabled=is_loyalty_enabled,
        loyalty_earning_rate=earning_rate,
        loyalty_redemption_rate=redemption_rate,
        tax_rate=to_decimal(tax_rate, "tax_rate")
    )
    db.add(outlet)
    await db.commit()
    return outlet


class LoyaltyService:

    @staticmethod
    async def _get_customer(db: AsyncSession, customer_id: int, for_update: bool = False) -> Contact:
        query = select(Contact).where(Contact.id == customer_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        customer = (await db.execute(query)).scalar_one_or_none()
        if not customer:
            raise NotFoundError("Customer", customer_id)
        return customer

    @staticmethod
    async def earn_points(
        db: AsyncSession,
        sale_id: Optional[Any],
        customer_id: int,
        outlet_id: int,
        amount_paid: Any
    ) -> Optional[LoyaltyLog]:
        """
        Credit points for a payment.

        Returns:
            The EARN log, or None when the outlet is unknown, has loyalty
            disabled or earns at a zero rate

        Raises:
            ValidationError: amount_paid is not positive
            NotFoundError: Unknown customer at an earning outlet
        """
        amount_paid = to_decimal(amount_paid, "amount_paid")
        if amount_paid <= 0:
            raise ValidationError("Amount paid must be greater than 0")

        # Outlet first: a payment that earns nothing never locks the customer
        outlet = await db.get(Outlet, outlet_id)
        if not outlet or not outlet.is_loyalty_enabled:
            return None

        rate = to_decimal(outlet.loyalty_earning_rate)
        if rate <= 0:
            return None

        customer = await LoyaltyService._get_customer(db, customer_id, for_update=True)

        points = amount_paid * rate

        try:
            customer.loyalty_points = to_decimal(customer.loyalty_points) + points
            log = LoyaltyLog(
                contact_id=customer.id,
                outlet_id=outlet.id,
                points=points,
                type=LoyaltyLogType.EARN,
                reference_id=str(sale_id) if sale_id is not None else None,
                description=f"Earned from sale {sale_id}" if sale_id is not None else "Earned from payment"
            )
            db.add(log)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Earning points for customer %s failed; rolled back", customer_id)
            raise

        logger.info("Customer %s earned %s points at outlet %s", customer_id, points, outlet_id)
        return log

    @staticmethod
    async def redeem_points(
        db: AsyncSession,
        customer_id: int,
        outlet_id: int,
        points_to_redeem: Any,
        sale_id: Optional[Any] = None
    ) -> Decimal:
        """
        Deduct points and return their currency value at the outlet.

        The customer row is locked before the balance check so two
        redemptions cannot both spend the same points.

        Raises:
            ValidationError: points_to_redeem is not positive
            NotFoundError: Unknown customer or outlet
            InsufficientPointsError: Balance lower than requested
        """
        points = to_decimal(points_to_redeem, "points_to_redeem")
        if points <= 0:
            raise ValidationError("Points to redeem must be greater than 0")

        outlet = await db.get(Outlet, outlet_id)
        if not outlet:
            raise NotFoundError("Outlet", outlet_id)

        customer = await LoyaltyService._get_customer(db, customer_id, for_update=True)

        available = to_decimal(customer.loyalty_points)
        if available < points:
            raise InsufficientPointsError(available=available, required=points)

        value = points * to_decimal(outlet.loyalty_redemption_rate)

        try:
            customer.loyalty_points = available - points
            db.add(LoyaltyLog(
                contact_id=customer.id,
                outlet_id=outlet.id,
                points=-points,
                type=LoyaltyLogType.REDEEM,
                reference_id=str(sale_id) if sale_id is not None else None,
                description=f"Redeemed for value {value}"
            ))
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Redeeming points for customer %s failed; rolled back", customer_id)
            raise

        logger.info("Customer %s redeemed %s points (value %s)", customer_id, points, value)
        return value

    @staticmethod
    async def calculate_redemption_value(db: AsyncSession, outlet_id: int, points: Any) -> Decimal:
        outlet = await db.get(Outlet, outlet_id)
        if not outlet:
            raise NotFoundError("Outlet", outlet_id)
        return to_decimal(points, "points") * to_decimal(outlet.loyalty_redemption_rate)

    @staticmethod
    async def get_loyalty_history(db: AsyncSession, customer_id: int, limit: int = 100) -> List[LoyaltyLog]:
        """Loyalty logs for a customer, newest first."""
        await LoyaltyService._get_customer(db, customer_id)

        result = await db.execute(
            select(LoyaltyLog)
            .where(LoyaltyLog.contact_id == customer_id)
            .order_by(LoyaltyLog.created_at.desc(), LoyaltyLog.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
