"""
Trail service - Business logic for trail storage and scoring.
"""

import logging
from pathlib import Path
from typing import Any

from ...trail import engine
from ...trail.errors import TrailNotFound
from ...trail.models import Trail, TrailStep
from ...trail.store import TrailStore
from ..models.api_models import ScoreComponent, TrailScoreResponse

logger = logging.getLogger(__name__)


class TrailService:
    """
    Service layer for trail operations.

    Wraps TrailStore with:
    - Validation of incoming trail documents
    - Not-found handling (TrailNotFound)
    - Score and metric assembly
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._store: TrailStore | None = None

    async def _get_store(self) -> TrailStore:
        """Get or create store instance."""
        if self._store is None:
            self._store = TrailStore(self.db_path)
            await self._store.initialize()
        return self._store

    async def close(self) -> None:
        if self._store:
            await self._store.close()
            self._store = None

    async def save_trail(self, payload: dict[str, Any]) -> Trail:
        """
        Store a trail document.

        Raises:
            MalformedTrailData: If the document is not a valid trail
        """
        trail = engine.import_from_dict(payload)
        store = await self._get_store()
        await store.save_trail(trail)
        return await self.get_trail(trail.id)

    async def append_step(self, trail_id: str, step: TrailStep) -> Trail:
        """
        Append a step and return the stored trail.

        Raises:
            TrailNotFound: If the trail was never saved
        """
        store = await self._get_store()
        await store.append_step(trail_id, step)
        return await self.get_trail(trail_id)

    async def get_trail(self, trail_id: str) -> Trail:
        store = await self._get_store()
        trail = await store.get_trail(trail_id)
        if trail is None:
            raise TrailNotFound(trail_id)
        return trail

    async def get_score(self, trail_id: str) -> TrailScoreResponse:
        trail, metrics = engine.load_trail(await self.get_trail(trail_id))
        breakdown = engine.score_breakdown(trail.steps)

        return TrailScoreResponse(
            trail_id=trail.id,
            score=breakdown.score,
            raw=breakdown.raw,
            components=[
                ScoreComponent(label=label, value=value, weight=weight, contribution=contribution)
                for label, value, weight, contribution in breakdown.components()
            ],
            outbound_clicks=metrics.outbound_clicks,
            unique_domains=sorted(metrics.unique_domains),
            depth=metrics.depth,
        )
