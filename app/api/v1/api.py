# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import tenants, invitations, account_setup, reminders

# Create main API router
api_router = APIRouter()

api_router.include_router(
    tenants.router,
    prefix="/tenants",
    tags=["tenants"]
)

api_router.include_router(
    invitations.router,
    prefix="/invitations",
    tags=["invitations"]
)

api_router.include_router(
    account_setup.router,
    prefix="/account-setup",
    tags=["account-setup"]
)

api_router.include_router(
    reminders.router,
    prefix="/reminders",
    tags=["reminders"]
)
