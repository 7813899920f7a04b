"""
Pydantic models for API requests and responses.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...trail.models import SearchParams, SourceCard, Trail, TrailStep


# Search API models


class SearchRequest(BaseModel):
    """Search query with its parameters."""

    query: str
    params: SearchParams = Field(default_factory=SearchParams)


class SearchResponse(BaseModel):
    """Search results."""

    cards: list[SourceCard]


class TangentsResponse(BaseModel):
    """Suggested follow-up queries."""

    queries: list[str]


# Trail API models


class SaveTrailRequest(BaseModel):
    """A full trail to store (validated through the trail importer)."""

    trail: dict[str, Any]


class AppendStepRequest(BaseModel):
    """One step to append to a stored trail."""

    model_config = ConfigDict(populate_by_name=True)

    trail_id: str = Field(..., alias="trailId", min_length=1)
    step: TrailStep


class TrailWriteResponse(BaseModel):
    """Stored trail after a write."""

    trail: Trail
    ok: bool = True


class ScoreComponent(BaseModel):
    """One term of the exploration score."""

    label: str
    value: int
    weight: int
    contribution: float


class TrailScoreResponse(BaseModel):
    """Exploration score and metrics for a stored trail."""

    trail_id: str
    score: int = Field(ge=0)
    raw: float
    components: list[ScoreComponent]
    outbound_clicks: int = Field(ge=0)
    unique_domains: list[str]
    depth: int = Field(ge=0)


class HealthResponse(BaseModel):
    ok: bool = True
