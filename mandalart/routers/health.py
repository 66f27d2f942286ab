"""
Health check endpoints for the API.
"""
from fastapi import APIRouter, Depends
from typing import Dict, Any
from datetime import datetime

from mandalart.config import settings
from mandalart.dependencies import get_project_store
from mandalart.storage import ProjectStore

router = APIRouter()

@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.
    Returns API status and version information.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

@router.get("/health/storage")
async def storage_health(
    store: ProjectStore = Depends(get_project_store)
) -> Dict[str, Any]:
    """
    Check project store health.
    Returns document counts for every collection.
    """
    try:
        storage_stats = store.get_stats()

        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            **storage_stats,
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "timestamp": datetime.now().isoformat(),
            "error": str(e)
        }
