"""
Search and tangent-generation collaborator protocols.

The trail engine never calls these; the session uses them to produce the
source cards and follow-up queries that steps are built from.
"""

import logging
from typing import Protocol

from ..trail.models import SearchParams, SourceCard, TangentContext

logger = logging.getLogger(__name__)


class SearchProvider(Protocol):
    """Protocol for search providers."""

    @property
    def name(self) -> str:
        """Provider name."""
        ...

    async def search(self, query: str, params: SearchParams) -> list[SourceCard]:
        """
        Execute search and return source cards.

        Args:
            query: Search query
            params: Result count, bucket filter and diversification knobs

        Returns:
            List of source cards
        """
        ...


class TangentGenerator(Protocol):
    """Protocol for follow-up query generators."""

    async def generate(self, context: TangentContext) -> list[str]:
        """Suggest follow-up queries for a source."""
        ...
