"""Platform status and metrics endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...services.multichat import MultiChatService
from ...utils.metrics import metrics_registry
from ..dependencies import get_service

router = APIRouter()


@router.get("/status")
async def get_status(service: MultiChatService = Depends(get_service)) -> Dict[str, bool]:
    """Which platforms are enabled and whether OAuth platforms hold a token."""
    return service.status()


@router.get("/metrics")
async def get_metrics() -> Dict[str, Any]:
    """Snapshot of in-process adapter and hub metrics."""
    return metrics_registry.get_all_stats()
