"""
Database seeding script for a fresh installation.

Creates the schema, an ADMIN user, the standard chart of accounts and a
default outlet. Safe to run more than once.

    python -m bizos.seed_data
"""

import asyncio

from sqlalchemy import select

from bizos.app.core.security import get_password_hash
from bizos.app.db.session import AsyncSessionLocal, Base, engine
from bizos.app.domain.ledger.chart_of_accounts import seed_chart_of_accounts
from bizos.app.domain.loyalty.loyalty_service import create_outlet
from bizos.app.main import app  # noqa: F401  registers every model with Base
from bizos.app.models.enums import UserRole
from bizos.app.models.outlet import Outlet
from bizos.app.models.user import User


async def seed_data():
    """
    Seed initial data.

    Creates:
    - 1 ADMIN user (admin / admin123)
    - the standard chart of accounts
    - 1 outlet with default loyalty rates
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        result = await db.execute(select(User).where(User.username == "admin"))
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping")
        else:
            db.add(User(
                email="admin@bizos.local",
                username="admin",
                hashed_password=get_password_hash("admin123"),
                role=UserRole.ADMIN,
                permissions=[],
                is_active=True,
                is_superuser=True
            ))
            await db.commit()
            print("✅ Created ADMIN user (username: admin, password: admin123)")

        created = await seed_chart_of_accounts(db)
        print(f"✅ Chart of accounts: {len(created)} accounts created")

        result = await db.execute(select(Outlet).limit(1))
        if result.scalar_one_or_none():
            print("ℹ️  Outlet already exists, skipping")
        else:
            outlet = await create_outlet(db, name="Main Outlet")
            print(f"✅ Created outlet '{outlet.name}' (earning rate {outlet.loyalty_earning_rate})")

    await engine.dispose()
    print("\n🎉 Seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(seed_data())
