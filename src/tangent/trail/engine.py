"""
Trail engine: mutation rules, derived metrics and the exploration score.

All functions here are pure. They never perform I/O, and they never modify
the trail they are given. Persistence and presentation are handled by
collaborators (see tangent.session, tangent.trail.store, tangent.export).

Score formula:
    raw = 10*log2(1 + branches)
        + 6*log2(1 + unique domains)
        + 8*primary clicks
        + 4*notes
        + 12*returns            (1 when depth > 2)
        - 5*same-domain repeats
    score = max(0, round_half_up(raw))
"""

import json
import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse
from uuid import uuid4

from pydantic import ValidationError

from .errors import MalformedTrailData
from .models import BranchStep, NoteStep, OpenStep, SourceCard, Trail, TrailMetrics, TrailStep, utc_now

logger = logging.getLogger(__name__)

# Substrings that mark an opened domain as a primary source (case-sensitive)
PRIMARY_DOMAIN_MARKERS = ("wikipedia", "arxiv")

BRANCH_WEIGHT = 10
DOMAIN_WEIGHT = 6
PRIMARY_WEIGHT = 8
NOTE_WEIGHT = 4
RETURN_WEIGHT = 12
REPEAT_PENALTY = 5

# Depth above which a trail earns the "returns" bonus
RETURN_DEPTH_THRESHOLD = 2


@dataclass(frozen=True)
class ScoreBreakdown:
    """Components of the exploration score for one step log."""

    branches: int
    notes: int
    domain_count: int
    primary_clicks: int
    returns: int
    same_domain_repeats: int
    raw: float
    score: int

    def components(self) -> list[tuple[str, int, int, float]]:
        """(label, value, weight, contribution) rows, in formula order."""
        return [
            ("Branches", self.branches, BRANCH_WEIGHT, BRANCH_WEIGHT * math.log2(1 + self.branches)),
            (
                "Unique domains",
                self.domain_count,
                DOMAIN_WEIGHT,
                DOMAIN_WEIGHT * math.log2(1 + self.domain_count),
            ),
            ("Primary sources", self.primary_clicks, PRIMARY_WEIGHT, PRIMARY_WEIGHT * self.primary_clicks),
            ("Notes", self.notes, NOTE_WEIGHT, NOTE_WEIGHT * self.notes),
            ("Deep exploration", self.returns, RETURN_WEIGHT, RETURN_WEIGHT * self.returns),
            (
                "Same domain penalty",
                self.same_domain_repeats,
                -REPEAT_PENALTY,
                -REPEAT_PENALTY * self.same_domain_repeats,
            ),
        ]


# --- Trail lifecycle ---


def create_trail(query: str) -> Trail:
    """
    Start a new, empty trail.

    Args:
        query: Query that started the trail. May be empty; not validated.

    Returns:
        Trail with a fresh id and no steps
    """
    return Trail(id=str(uuid4()), query=query, created_at=utc_now(), steps=())


def append_step(trail: Trail, step: TrailStep) -> Trail:
    """
    Return a new trail with ``step`` added at the end of the log.

    The given trail is left untouched and every prior step is carried over
    unchanged.
    """
    return trail.model_copy(update={"steps": (*trail.steps, step)})


def compute_metrics(steps: Iterable[TrailStep]) -> TrailMetrics:
    """Derive click, domain and depth metrics in a single in-order scan."""
    outbound_clicks = 0
    depth = 0
    domains: set[str] = set()

    for step in steps:
        if isinstance(step, OpenStep):
            outbound_clicks += 1
            domains.add(step.domain)
        elif isinstance(step, BranchStep):
            depth += 1

    return TrailMetrics(
        outbound_clicks=outbound_clicks,
        unique_domains=frozenset(domains),
        depth=depth,
    )


def load_trail(trail: Trail) -> tuple[Trail, TrailMetrics]:
    """
    Load a fully materialized trail (fetched or imported).

    Metrics are always recomputed from the step log; this is the only way
    metrics enter the system.
    """
    metrics = compute_metrics(trail.steps)
    logger.debug(
        f"Loaded trail {trail.id}: {len(trail.steps)} steps, "
        f"{metrics.outbound_clicks} clicks, depth {metrics.depth}"
    )
    return trail, metrics


# --- Scoring ---


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _is_primary_domain(domain: str) -> bool:
    return any(marker in domain for marker in PRIMARY_DOMAIN_MARKERS)


def score_breakdown(steps: Sequence[TrailStep]) -> ScoreBreakdown:
    """
    Compute every component of the exploration score.

    Args:
        steps: Trail step log

    Returns:
        ScoreBreakdown with the raw value and final clamped score
    """
    branches = 0
    notes = 0
    primary_clicks = 0
    domain_counts: Counter[str] = Counter()

    for step in steps:
        if isinstance(step, BranchStep):
            branches += 1
        elif isinstance(step, NoteStep):
            notes += 1
        elif isinstance(step, OpenStep):
            domain_counts[step.domain] += 1
            if _is_primary_domain(step.domain):
                primary_clicks += 1

    domain_count = len(domain_counts)
    returns = 1 if branches > RETURN_DEPTH_THRESHOLD else 0
    same_domain_repeats = sum(count - 1 for count in domain_counts.values() if count > 1)

    raw = (
        BRANCH_WEIGHT * math.log2(1 + branches)
        + DOMAIN_WEIGHT * math.log2(1 + domain_count)
        + PRIMARY_WEIGHT * primary_clicks
        + NOTE_WEIGHT * notes
        + RETURN_WEIGHT * returns
        - REPEAT_PENALTY * same_domain_repeats
    )

    return ScoreBreakdown(
        branches=branches,
        notes=notes,
        domain_count=domain_count,
        primary_clicks=primary_clicks,
        returns=returns,
        same_domain_repeats=same_domain_repeats,
        raw=raw,
        score=max(0, _round_half_up(raw)),
    )


def exploration_score(trail: Trail) -> int:
    """Exploration score of a trail; never negative, 0 for an empty log."""
    return score_breakdown(trail.steps).score


def step_depths(steps: Sequence[TrailStep]) -> list[tuple[int, TrailStep]]:
    """
    Pair each step with its rendering depth.

    Depth is the number of branches seen so far (including the step
    itself) minus one, floored at 0: everything up to the second branch
    sits at 0 and each later branch nests one level deeper.
    """
    branches_seen = 0
    rendered = []
    for step in steps:
        if isinstance(step, BranchStep):
            branches_seen += 1
        rendered.append((max(0, branches_seen - 1), step))
    return rendered


# --- Step construction ---


def open_step_from_card(card: SourceCard) -> OpenStep:
    """Record that the user followed a source card's link."""
    return OpenStep(url=card.url, title=card.title, domain=card.domain)


def domain_of(url: str) -> str:
    """Host name of a URL without a leading 'www.'."""
    host = urlparse(url).hostname or ""
    return host.removeprefix("www.")


def open_step(url: str, title: str | None = None, domain: str | None = None) -> OpenStep:
    return OpenStep(url=url, title=title or url, domain=domain or domain_of(url))


def branch_step(query: str) -> BranchStep:
    return BranchStep(query=query)


def note_step(text: str) -> NoteStep:
    return NoteStep(text=text)


# --- Text serialization ---


def export_to_text(trail: Trail) -> str:
    """
    Serialize a trail to its JSON text form.

    The document carries id, query, createdAt, the ordered steps and the
    current score. The score is advisory; importers recompute it.
    """
    return trail.model_dump_json(by_alias=True, indent=2)


def import_from_text(text: str) -> Trail:
    """
    Parse a trail from its JSON text form.

    Args:
        text: Document produced by export_to_text (or a compatible producer)

    Returns:
        The parsed trail. Use load_trail to obtain its metrics.

    Raises:
        MalformedTrailData: If the text is not a JSON object or required
            fields are missing or invalid
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise MalformedTrailData(f"Trail data is not valid JSON: {e}") from e

    return import_from_dict(payload)


def import_from_dict(payload: Any) -> Trail:
    """Build a trail from already decoded JSON data. Raises MalformedTrailData."""
    if not isinstance(payload, dict):
        raise MalformedTrailData("Trail data must be a JSON object")

    # Advisory only; recomputed from the steps
    payload = {key: value for key, value in payload.items() if key != "score"}

    try:
        return Trail.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'trail'}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedTrailData(f"Invalid trail data: {problems}") from e
