"""API Routes Module"""
from fastapi import APIRouter

from .auth import router as auth_router
from .notifications import router as notifications_router
from .pharmacy import router as pharmacy_router
from .dev import router as dev_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(pharmacy_router, prefix="/pharmacy", tags=["Pharmacy"])

__all__ = ["api_router", "dev_router"]
