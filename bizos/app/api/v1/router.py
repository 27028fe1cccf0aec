"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from bizos.app.api.v1.endpoints import (
    auth, admin, finance, ledger_maintenance, customers, loyalty
)

router = APIRouter()

# Authentication and user management
router.include_router(auth.router)
router.include_router(admin.router)

# General ledger
router.include_router(finance.router)
router.include_router(ledger_maintenance.router)

# Customers, outlets and loyalty
router.include_router(customers.router)
router.include_router(loyalty.outlet_router)
router.include_router(loyalty.router)
