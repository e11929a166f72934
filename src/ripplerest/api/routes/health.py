"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends

from ripplerest import __version__
from ripplerest.config import get_settings
from ripplerest.remote.base import Remote
from ripplerest.remote.factory import get_remote

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "ripplerest"}


@router.get("/health/detailed")
async def detailed_health(remote: Remote = Depends(get_remote)):
    """Detailed health check with configuration and remote status."""
    settings = get_settings()

    remote_status = {"connected": False}
    try:
        remote_status["connected"] = await remote.is_connected()
    except Exception as e:
        logger.warning(f"Remote status check failed: {e}")
        remote_status["error"] = str(e)

    return {
        "status": "healthy" if remote_status["connected"] else "degraded",
        "service": "ripplerest",
        "version": __version__,
        "remote": remote_status,
        "config": settings.get_safe_dict(),
    }
