"""
Trail session: the application state around the trail engine.

A TrailSession owns the single active trail, its derived metrics, the
search settings and the current result cards. Every trail change goes
through the pure functions in tangent.trail.engine; the session only
decides which trail is active and hands changes to the persistence
collaborator in the background.

States:
    Unset  - no active trail (initial)
    Active - a trail exists and accepts appends

start_new_trail / load_trail / import_trail / fetch_trail replace the
active trail entirely. Failed imports and fetches leave it untouched.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .search.base import SearchProvider, TangentGenerator
from .trail import engine
from .trail.engine import ScoreBreakdown
from .trail.errors import MalformedTrailData, PersistenceFailure, TrailNotFound
from .trail.models import SearchParams, SourceCard, TangentContext, Trail, TrailMetrics, TrailStep
from .trail.store import TrailPersistence
from .utils.logging import StructuredLogger

logger = logging.getLogger(__name__)

IMPORT_ERROR_MESSAGE = "Invalid trail JSON format"


class TrailSession:
    """Application state holding the active trail."""

    def __init__(
        self,
        settings: SearchParams | None = None,
        persistence: TrailPersistence | None = None,
        search_provider: SearchProvider | None = None,
        tangent_generator: TangentGenerator | None = None,
    ):
        """
        Initialize an empty (Unset) session.

        Args:
            settings: Search settings; defaults to SearchParams()
            persistence: Where trail changes are recorded in the background
            search_provider: Source of result cards
            tangent_generator: Source of follow-up queries
        """
        self.settings = settings or SearchParams()
        self.persistence = persistence
        self.search_provider = search_provider
        self.tangent_generator = tangent_generator

        self.current_trail: Trail | None = None
        self.metrics = TrailMetrics()
        self.current_cards: list[SourceCard] = []
        self.is_loading = False
        self.error: str | None = None

        self.persistence_failures: list[PersistenceFailure] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._last_write: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self.current_trail is not None

    def _log(self) -> StructuredLogger:
        trail_id = self.current_trail.id if self.current_trail else "-"
        return StructuredLogger(__name__, trail_id=trail_id)

    # --- Trail management ---

    def start_new_trail(self, query: str) -> Trail:
        """
        Start a new trail, superseding any active one.

        Metrics, cards and errors are reset. The caller runs the first
        search (see submit_query).
        """
        trail = engine.create_trail(query)
        self.current_trail = trail
        self.metrics = TrailMetrics()
        self.current_cards = []
        self.error = None

        self._log().info(f"Started trail for query '{query[:50]}'")

        if self.persistence is not None:
            self._persist_in_background(trail.id, self.persistence.save_trail(trail))

        return trail

    def add_step(self, step: TrailStep) -> Trail | None:
        """
        Append a step to the active trail.

        The in-memory append always completes first; persistence runs as a
        detached task whose failure is logged and never rolls it back.

        Returns:
            The new active trail, or None when no trail is active
        """
        if self.current_trail is None:
            logger.debug(f"Ignoring {step.type} step: no active trail")
            return None

        trail = engine.append_step(self.current_trail, step)
        _, self.metrics = engine.load_trail(trail)
        self.current_trail = trail

        self._log().debug(f"Appended {step.type} step (#{len(trail.steps)})")

        if self.persistence is not None:
            self._persist_in_background(trail.id, self.persistence.append_step(trail.id, step))

        return trail

    def open_card(self, card: SourceCard) -> Trail | None:
        return self.add_step(engine.open_step_from_card(card))

    def branch(self, query: str) -> Trail | None:
        return self.add_step(engine.branch_step(query))

    def add_note(self, text: str) -> Trail | None:
        """Attach a note; blank text is ignored."""
        text = text.strip()
        if not text:
            return None
        return self.add_step(engine.note_step(text))

    def load_trail(self, trail: Trail) -> Trail:
        """Make ``trail`` the active trail, recomputing all metrics from its steps."""
        self.current_trail, self.metrics = engine.load_trail(trail)
        self._log().info(f"Loaded trail ({len(trail.steps)} steps)")
        return trail

    def import_trail(self, text: str) -> Trail:
        """
        Import an exported trail and make it active.

        Raises:
            MalformedTrailData: The active trail is left untouched and
                ``error`` is set to a user-visible message
        """
        try:
            trail = engine.import_from_text(text)
        except MalformedTrailData as e:
            self.error = IMPORT_ERROR_MESSAGE
            logger.warning(f"Trail import failed: {e}")
            raise

        self.load_trail(trail)
        self.error = None
        return trail

    def export_trail(self) -> str:
        """Text form of the active trail, or an empty object when Unset."""
        if self.current_trail is None:
            return "{}"
        return engine.export_to_text(self.current_trail)

    def save_current_trail(self) -> bool:
        """
        Store the active trail in the background (e.g. after an import).

        Returns:
            False when there is no active trail or no persistence
        """
        if self.current_trail is None or self.persistence is None:
            return False

        trail = self.current_trail
        self._persist_in_background(trail.id, self.persistence.save_trail(trail))
        return True

    async def fetch_trail(self, trail_id: str) -> Trail:
        """
        Fetch a shared trail by id and make it active.

        Raises:
            TrailNotFound: The persistence collaborator does not know the id;
                the active trail is left untouched
            RuntimeError: No persistence collaborator is configured
        """
        if self.persistence is None:
            raise RuntimeError("No trail persistence configured")

        trail = await self.persistence.get_trail(trail_id)
        if trail is None:
            raise TrailNotFound(trail_id)

        return self.load_trail(trail)

    # --- Search ---

    async def submit_query(self, query: str) -> list[SourceCard]:
        """
        Run a query from the search box.

        A query that differs from the active trail's query starts a new
        trail; otherwise the existing trail is searched again.
        """
        query = query.strip()
        if not query:
            return self.current_cards

        if self.current_trail is None or self.current_trail.query != query:
            self.start_new_trail(query)

        return await self.perform_search(query)

    async def perform_search(self, query: str) -> list[SourceCard]:
        """
        Search with the current settings and store the resulting cards.

        Failures are reported through ``error`` and leave no cards.
        """
        if self.search_provider is None:
            raise RuntimeError("No search provider configured")

        self.is_loading = True
        self.error = None

        try:
            self.current_cards = await self.search_provider.search(query, self.settings)
        except Exception as e:
            logger.error(f"Search failed for '{query[:50]}': {e}")
            self.error = str(e) or "Search failed"
            self.current_cards = []
        finally:
            self.is_loading = False

        return self.current_cards

    async def follow_tangent(self, tangent: str) -> list[SourceCard]:
        """Branch the trail into a tangent and search it."""
        self.branch(tangent)
        return await self.perform_search(tangent)

    async def generate_tangents(self, card: SourceCard) -> list[str]:
        """Ask for follow-up queries for a card; returns [] on failure."""
        if self.tangent_generator is None:
            return list(card.tangents)

        try:
            return await self.tangent_generator.generate(
                TangentContext(title=card.title, url=card.url, context=card.snippet)
            )
        except Exception as e:
            logger.error(f"Failed to generate tangents: {e}")
            return []

    # --- Derived values ---

    def exploration_score(self) -> int:
        if self.current_trail is None:
            return 0
        return engine.exploration_score(self.current_trail)

    def score_breakdown(self) -> ScoreBreakdown | None:
        if self.current_trail is None:
            return None
        return engine.score_breakdown(self.current_trail.steps)

    # --- Persisted subset ---

    def snapshot(self) -> dict[str, Any]:
        """Settings and current trail, the part of the session that survives restarts."""
        return {
            "settings": self.settings.model_dump(mode="json", by_alias=True),
            "currentTrail": (
                json.loads(engine.export_to_text(self.current_trail))
                if self.current_trail
                else None
            ),
        }

    def restore(self, data: dict[str, Any]) -> None:
        """
        Restore a snapshot.

        The trail goes through the normal loading path, so its metrics are
        recomputed. Unreadable settings or trail data raise
        MalformedTrailData and leave the session unchanged.
        """
        try:
            settings = SearchParams.model_validate(data.get("settings") or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
                for err in e.errors()
            )
            raise MalformedTrailData(f"Invalid session settings: {problems}") from e

        trail_data = data.get("currentTrail")
        trail = engine.import_from_dict(trail_data) if trail_data else None

        self.settings = settings
        if trail is not None:
            self.load_trail(trail)

    # --- Background persistence ---

    def _persist_in_background(self, trail_id: str, write: Coroutine[Any, Any, None]) -> None:
        """Schedule a persistence write without waiting for it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            write.close()
            logger.warning(f"No running event loop; change to trail {trail_id} not persisted")
            return

        task = loop.create_task(self._run_write(trail_id, write, self._last_write))
        self._last_write = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_write(
        self,
        trail_id: str,
        write: Coroutine[Any, Any, None],
        previous: asyncio.Task[None] | None,
    ) -> None:
        # Writes reach the collaborator in the order they were issued
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        try:
            await write
        except Exception as e:
            failure = PersistenceFailure(trail_id, e)
            self.persistence_failures.append(failure)
            logger.warning(str(failure))

    async def drain(self) -> None:
        """Wait for outstanding background writes (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending))


def save_session_state(session: TrailSession, path: Path) -> None:
    """Write the session's persisted subset to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(session.snapshot(), indent=2), encoding="utf-8")


def load_session_state(session: TrailSession, path: Path) -> None:
    """Restore a session from ``path`` if it exists."""
    if not path.exists():
        return

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise MalformedTrailData(f"Session state is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedTrailData("Session state must be a JSON object")

    session.restore(data)
