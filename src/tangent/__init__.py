"""
Tangent - Exploration trails with an exploration score.

Records how you move through a research session (sources opened, tangents
branched into, notes taken) as an append-only trail, and scores how
broadly you explored.

Example:
    import asyncio
    from tangent import TrailSession, TrailStore
    from tangent.search import MockSearchProvider

    async def main():
        store = TrailStore(".tangent/trails.db")
        session = TrailSession(persistence=store, search_provider=MockSearchProvider())

        cards = await session.submit_query("history of cartography")
        session.open_card(cards[0])
        await session.follow_tangent("portolan charts")
        session.add_note("Compare with Ptolemy's projections")

        print(session.exploration_score())
        await session.drain()
        await store.close()

    asyncio.run(main())
"""

__version__ = "0.1.0"

# Core exports
from .trail.models import Trail, TrailMetrics, SourceCard, SearchParams
from .trail.errors import MalformedTrailData, TrailNotFound, PersistenceFailure
from .trail.store import TrailStore
from .session import TrailSession

__all__ = [
    "__version__",
    "Trail",
    "TrailMetrics",
    "SourceCard",
    "SearchParams",
    "MalformedTrailData",
    "TrailNotFound",
    "PersistenceFailure",
    "TrailStore",
    "TrailSession",
]
