"""
Tests for the trail engine.

This test suite covers:
- Trail creation and append-only step log
- Derived metrics (clicks, domains, depth)
- Exploration score formula, rounding and clamping
- Render depths
- Text export/import round trip and malformed input
"""

import json

import pytest

from tangent.trail import engine
from tangent.trail.errors import MalformedTrailData
from tangent.trail.models import BranchStep, NoteStep, OpenStep, SourceCard


def _open(domain: str, url: str | None = None) -> OpenStep:
    return OpenStep(url=url or f"https://{domain}/page", title=f"Page on {domain}", domain=domain)


def _trail_with(*steps):
    trail = engine.create_trail("test query")
    for step in steps:
        trail = engine.append_step(trail, step)
    return trail


def test_create_trail():
    """New trails get a fresh id and an empty log."""
    first = engine.create_trail("history of cartography")
    second = engine.create_trail("history of cartography")

    assert first.id and second.id
    assert first.id != second.id
    assert first.query == "history of cartography"
    assert first.steps == ()
    assert first.score == 0


def test_create_trail_allows_empty_query():
    trail = engine.create_trail("")
    assert trail.query == ""


def test_append_preserves_prefix():
    """Appending returns a new trail and never alters earlier steps."""
    first = _open("arxiv.org")
    trail = _trail_with(first, BranchStep(query="transformers"))

    note = NoteStep(text="read later")
    appended = engine.append_step(trail, note)

    assert appended.steps == (*trail.steps, note)
    assert appended.steps[0] is first
    assert len(trail.steps) == 2
    assert appended.id == trail.id
    assert appended.query == trail.query
    assert appended.created_at == trail.created_at


def test_compute_metrics():
    steps = [
        _open("wikipedia.org"),
        _open("wikipedia.org"),
        BranchStep(query="tangent"),
        _open("arxiv.org"),
        NoteStep(text="note"),
        BranchStep(query="another"),
    ]

    metrics = engine.compute_metrics(steps)

    assert metrics.outbound_clicks == 3
    assert metrics.unique_domains == frozenset({"wikipedia.org", "arxiv.org"})
    assert metrics.depth == 2


def test_load_trail_recomputes_metrics():
    trail = _trail_with(_open("reddit.com"), BranchStep(query="x"))

    loaded, metrics = engine.load_trail(trail)

    assert loaded is trail
    assert metrics.outbound_clicks == 1
    assert metrics.unique_domains == frozenset({"reddit.com"})
    assert metrics.depth == 1


def test_score_empty_trail():
    assert engine.exploration_score(engine.create_trail("q")) == 0


def test_score_single_primary_open():
    """6*log2(2) + 8 = 14"""
    trail = _trail_with(_open("arxiv.org"))

    breakdown = engine.score_breakdown(trail.steps)

    assert breakdown.branches == 0
    assert breakdown.domain_count == 1
    assert breakdown.primary_clicks == 1
    assert breakdown.score == 14
    assert trail.score == 14


def test_score_same_domain_repeats():
    """10*log2(2) + 6*log2(2) - 5 = 11"""
    trail = _trail_with(_open("reddit.com"), _open("reddit.com"), BranchStep(query="q2"))

    breakdown = engine.score_breakdown(trail.steps)

    assert breakdown.branches == 1
    assert breakdown.domain_count == 1
    assert breakdown.primary_clicks == 0
    assert breakdown.notes == 0
    assert breakdown.returns == 0
    assert breakdown.same_domain_repeats == 1
    assert breakdown.score == 11


def test_score_rounds_fractional_raw():
    """10*log2(2) + 6*log2(3) = 19.51 -> 20"""
    trail = _trail_with(BranchStep(query="q"), _open("a.com"), _open("b.com"))

    breakdown = engine.score_breakdown(trail.steps)

    assert breakdown.raw == pytest.approx(19.5098, abs=1e-3)
    assert breakdown.score == 20


def test_round_half_up():
    assert engine._round_half_up(2.5) == 3
    assert engine._round_half_up(0.5) == 1
    assert engine._round_half_up(2.4999) == 2
    assert engine._round_half_up(-0.5) == 0


def test_score_returns_bonus_after_third_branch():
    """10*log2(4) + 12 = 32"""
    two = _trail_with(BranchStep(query="a"), BranchStep(query="b"))
    three = engine.append_step(two, BranchStep(query="c"))

    assert engine.score_breakdown(two.steps).returns == 0
    assert engine.score_breakdown(three.steps).returns == 1
    assert engine.exploration_score(three) == 32


def test_score_notes():
    trail = _trail_with(NoteStep(text="one"), NoteStep(text="two"))
    assert engine.exploration_score(trail) == 8


def test_score_never_negative():
    """Five opens on one domain: 6 - 20 clamps to 0."""
    trail = _trail_with(*[_open("example.com") for _ in range(5)])

    breakdown = engine.score_breakdown(trail.steps)

    assert breakdown.raw < 0
    assert breakdown.score == 0


def test_primary_detection_is_case_sensitive_substring():
    assert engine.exploration_score(_trail_with(_open("en.wikipedia.org"))) == 14
    assert engine.exploration_score(_trail_with(_open("notarxiv.example"))) == 14
    assert engine.exploration_score(_trail_with(_open("Wikipedia.org"))) == 6


def test_score_is_deterministic():
    trail = _trail_with(_open("arxiv.org"), BranchStep(query="q"), NoteStep(text="n"))
    assert engine.exploration_score(trail) == engine.exploration_score(trail)
    assert engine.score_breakdown(trail.steps) == engine.score_breakdown(trail.steps)


def test_components_sum_to_raw():
    trail = _trail_with(
        _open("arxiv.org"), _open("arxiv.org"), BranchStep(query="q"), NoteStep(text="n")
    )
    breakdown = engine.score_breakdown(trail.steps)

    total = sum(contribution for _, _, _, contribution in breakdown.components())

    assert total == pytest.approx(breakdown.raw)
    assert [row[0] for row in breakdown.components()][0] == "Branches"


def test_step_depths():
    steps = [
        _open("a.com"),
        BranchStep(query="first"),
        _open("b.com"),
        BranchStep(query="second"),
        NoteStep(text="note"),
        BranchStep(query="third"),
    ]

    depths = [depth for depth, _ in engine.step_depths(steps)]

    assert depths == [0, 0, 0, 1, 1, 2]


def test_open_step_from_card():
    card = SourceCard(
        url="https://arxiv.org/abs/1",
        title="Paper",
        domain="arxiv.org",
        bucket="primary",
        snippet="...",
    )

    step = engine.open_step_from_card(card)

    assert step.type == "open"
    assert step.url == card.url
    assert step.title == "Paper"
    assert step.domain == "arxiv.org"


def test_open_step_derives_domain():
    step = engine.open_step("https://www.nature.com/articles/1")

    assert step.domain == "nature.com"
    assert step.title == "https://www.nature.com/articles/1"
    assert engine.open_step("https://x.org", title="X", domain="custom").domain == "custom"


def test_export_import_round_trip():
    trail = _trail_with(_open("arxiv.org"), BranchStep(query="q"), NoteStep(text="n"))

    text = engine.export_to_text(trail)
    imported, metrics = engine.load_trail(engine.import_from_text(text))

    assert imported.id == trail.id
    assert imported.query == trail.query
    assert imported.created_at == trail.created_at
    assert imported.steps == trail.steps
    assert imported.score == trail.score
    assert metrics.outbound_clicks == 1


def test_round_trip_keeps_naive_timestamps():
    """Trails written without a UTC offset come back without one."""
    text = json.dumps(
        {
            "id": "naive",
            "query": "q",
            "createdAt": "2024-01-01T10:30:00",
            "steps": [{"type": "note", "text": "n", "ts": "2024-01-01T10:31:15.250000"}],
        }
    )
    trail = engine.import_from_text(text)

    again = engine.import_from_text(engine.export_to_text(trail))

    assert trail.created_at.tzinfo is None
    assert again.created_at == trail.created_at
    assert again.created_at.tzinfo is None
    assert again.steps == trail.steps


def test_export_document_shape():
    trail = _trail_with(_open("arxiv.org"))

    data = json.loads(engine.export_to_text(trail))

    assert set(data) == {"id", "query", "createdAt", "steps", "score"}
    assert data["score"] == 14
    assert data["steps"][0]["type"] == "open"
    assert data["steps"][0]["domain"] == "arxiv.org"


def test_import_ignores_serialized_score():
    trail = _trail_with(_open("arxiv.org"))
    data = json.loads(engine.export_to_text(trail))
    data["score"] = 999

    imported = engine.import_from_text(json.dumps(data))

    assert imported.score == 14


def test_import_missing_steps_is_malformed():
    data = {"id": "abc", "query": "q", "createdAt": "2024-01-01T00:00:00Z"}

    with pytest.raises(MalformedTrailData) as exc_info:
        engine.import_from_text(json.dumps(data))

    assert "steps" in exc_info.value.message


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2, 3]",
        '{"id": "", "query": "q", "createdAt": "2024-01-01T00:00:00Z", "steps": []}',
        '{"id": "a", "query": "q", "createdAt": "2024-01-01T00:00:00Z",'
        ' "steps": [{"type": "teleport", "ts": "2024-01-01T00:00:00Z"}]}',
        "[" * 200000,
    ],
)
def test_import_rejects_malformed_text(text):
    with pytest.raises(MalformedTrailData):
        engine.import_from_text(text)
