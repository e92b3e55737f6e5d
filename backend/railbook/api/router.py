"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from railbook.api.routes import tickets

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(tickets.router)
