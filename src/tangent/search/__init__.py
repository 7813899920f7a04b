"""Search and tangent collaborators."""

from .base import SearchProvider, TangentGenerator
from .mock import MOCK_SOURCE_CARDS, MOCK_TANGENTS, MockSearchProvider, MockTangentGenerator

__all__ = [
    "MOCK_SOURCE_CARDS",
    "MOCK_TANGENTS",
    "MockSearchProvider",
    "MockTangentGenerator",
    "SearchProvider",
    "TangentGenerator",
]
