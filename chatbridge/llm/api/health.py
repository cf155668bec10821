"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from ... import __version__
from ..dependencies import ServiceContainer, get_container

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
async def health_check(container: ServiceContainer = Depends(get_container)) -> dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "tools": len(container.registry),
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }
