"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from easysplit.api.routes import menus, splits

api_router = APIRouter()

# Include all route modules
api_router.include_router(menus.router)
api_router.include_router(splits.router)
