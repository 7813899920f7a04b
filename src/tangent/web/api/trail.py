"""
Trail REST API endpoints.

Provides:
- POST /api/trail - Store a full trail
- POST /api/trail/append - Append one step to a stored trail
- GET /api/trail/{trail_id} - Fetch a stored trail
- GET /api/trail/{trail_id}/score - Exploration score and metrics
"""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ...trail.errors import MalformedTrailData, TrailNotFound
from ...trail.models import Trail
from ..models.api_models import (
    AppendStepRequest,
    SaveTrailRequest,
    TrailScoreResponse,
    TrailWriteResponse,
)
from ..services.trail_service import TrailService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["trail"])


# Dependency injection
_trail_service: TrailService | None = None


def get_trail_service() -> TrailService:
    """
    Get the TrailService instance.

    The service is initialized in server.py with db_path.
    """
    if _trail_service is None:
        raise HTTPException(status_code=500, detail="Trail service not initialized")
    return _trail_service


def init_trail_service(db_path: str | Path) -> None:
    """Initialize trail service (called by server.py on startup)."""
    global _trail_service
    _trail_service = TrailService(db_path)
    logger.info(f"Trail service initialized: {db_path}")


async def shutdown_trail_service() -> None:
    """Shutdown trail service (called by server.py on shutdown)."""
    global _trail_service
    if _trail_service:
        await _trail_service.close()
        _trail_service = None
        logger.info("Trail service closed")


@router.post("", response_model=TrailWriteResponse, status_code=201)
async def save_trail(
    request: SaveTrailRequest,
    service: Annotated[TrailService, Depends(get_trail_service)],
) -> TrailWriteResponse:
    """
    Store a full trail. Stored steps are never rewritten; only new steps
    are added. Any score in the document is ignored.

    Raises:
        400: Malformed trail document
    """
    try:
        trail = await service.save_trail(request.trail)
        return TrailWriteResponse(trail=trail)
    except MalformedTrailData as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except Exception as e:
        logger.error(f"Failed to save trail: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Trail save failed") from e


@router.post("/append", response_model=TrailWriteResponse)
async def append_step(
    request: AppendStepRequest,
    service: Annotated[TrailService, Depends(get_trail_service)],
) -> TrailWriteResponse:
    """
    Append one step to a stored trail.

    Raises:
        404: Trail not found
    """
    try:
        trail = await service.append_step(request.trail_id, request.step)
        return TrailWriteResponse(trail=trail)
    except TrailNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Trail append failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Trail append failed") from e


@router.get("/{trail_id}", response_model=Trail)
async def get_trail(
    trail_id: str,
    service: Annotated[TrailService, Depends(get_trail_service)],
) -> Trail:
    """
    Fetch a stored trail with its full step log.

    Raises:
        404: Trail not found
    """
    try:
        return await service.get_trail(trail_id)
    except TrailNotFound as e:
        raise HTTPException(status_code=404, detail="Trail not found") from e
    except Exception as e:
        logger.error(f"Trail fetch failed for {trail_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Trail fetch failed") from e


@router.get("/{trail_id}/score", response_model=TrailScoreResponse)
async def get_trail_score(
    trail_id: str,
    service: Annotated[TrailService, Depends(get_trail_service)],
) -> TrailScoreResponse:
    """
    Exploration score breakdown and metrics, recomputed from the stored steps.

    Raises:
        404: Trail not found
    """
    try:
        return await service.get_score(trail_id)
    except TrailNotFound as e:
        raise HTTPException(status_code=404, detail="Trail not found") from e
    except Exception as e:
        logger.error(f"Score computation failed for {trail_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e
