"""
Health check and system status endpoints.
"""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends

from ..models import HealthResponse
from ..config import Settings, get_settings
from fabricator.database import get_store

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api/v1",
    tags=["health"]
)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)]
):
    """
    Health check endpoint.

    Returns the health status of the API and database connection.
    """
    try:
        get_store(settings.database_url).verify_connection()

        return HealthResponse(
            status="healthy",
            version=settings.app_version,
            database="connected"
        )
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return HealthResponse(
            status="unhealthy",
            version=settings.app_version,
            database=f"disconnected: {str(e)}"
        )
