"""
Data models for exploration trails.

This module defines the core data structures used throughout tangent:
- TrailStep: one recorded event (open, branch or note)
- Trail: the append-only step log of one exploration session
- TrailMetrics: metrics derived from a trail's steps
- SourceCard / SearchParams: inputs handed over by the search collaborator
"""

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

Bucket = Literal["encyclopedia", "primary", "news", "blog", "forum", "dataset"]
Provider = Literal["parallel", "sonar", "brave"]

ALL_BUCKETS: list[Bucket] = ["encyclopedia", "primary", "news", "blog", "forum", "dataset"]


def utc_now() -> datetime:
    return datetime.now(UTC)


class OpenStep(BaseModel):
    """User followed a source link."""

    model_config = ConfigDict(frozen=True)

    type: Literal["open"] = "open"
    url: str
    title: str
    domain: str
    ts: datetime = Field(default_factory=utc_now)


class BranchStep(BaseModel):
    """User pivoted the trail into a new query."""

    model_config = ConfigDict(frozen=True)

    type: Literal["branch"] = "branch"
    query: str
    ts: datetime = Field(default_factory=utc_now)


class NoteStep(BaseModel):
    """Free-text annotation attached to the trail at this point."""

    model_config = ConfigDict(frozen=True)

    type: Literal["note"] = "note"
    text: str
    ts: datetime = Field(default_factory=utc_now)


TrailStep = Annotated[OpenStep | BranchStep | NoteStep, Field(discriminator="type")]


class Trail(BaseModel):
    """
    The ordered record of one exploration session.

    Trails are immutable values. Appending a step produces a new Trail
    (see tangent.trail.engine.append_step); the score is always recomputed
    from the step log and any score present in input data is ignored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique trail ID")
    query: str = Field(..., description="Query that started the trail (may be empty)")
    created_at: datetime = Field(..., alias="createdAt", description="When the trail was started")
    steps: tuple[TrailStep, ...] = Field(..., description="Append-only step log")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score(self) -> int:
        """Exploration score, derived from the step log."""
        from .engine import exploration_score

        return exploration_score(self)


class TrailSummary(BaseModel):
    """Lightweight trail representation for listings."""

    id: str
    query: str
    created_at: datetime
    step_count: int


class TrailMetrics(BaseModel):
    """Metrics derived from a trail's step log."""

    model_config = ConfigDict(frozen=True)

    outbound_clicks: int = 0
    unique_domains: frozenset[str] = frozenset()
    depth: int = 0


class SourceCard(BaseModel):
    """A search result card produced by the search collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: str
    domain: str
    bucket: Bucket
    snippet: str
    published_at: str | None = Field(default=None, alias="publishedAt")
    tangents: list[str] = Field(default_factory=list)


class SearchParams(BaseModel):
    """Parameters forwarded to the search collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    k: int = Field(default=8, ge=1)
    lambda_: float = Field(default=0.6, ge=0.0, le=1.0, alias="lambda")
    sigma: float = Field(default=0.5, ge=0.0, le=1.0)
    provider: Provider = "parallel"
    buckets: list[Bucket] = Field(default_factory=lambda: list(ALL_BUCKETS))
    contrarian: bool = False


class TangentContext(BaseModel):
    """Context handed to the tangent-generation collaborator."""

    title: str | None = None
    url: str | None = None
    context: str | None = None
