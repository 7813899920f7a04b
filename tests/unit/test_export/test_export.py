"""Tests for JSON and markdown trail export."""

import pytest

from tangent.export import (
    export_trail_to_json,
    export_trail_to_markdown,
    import_trail_from_json,
    render_trail_markdown,
)
from tangent.trail import engine
from tangent.trail.errors import MalformedTrailData
from tangent.trail.models import BranchStep, NoteStep, OpenStep


@pytest.fixture
def trail():
    t = engine.create_trail("history of cartography")
    for step in [
        OpenStep(url="https://en.wikipedia.org/wiki/Cartography", title="Cartography", domain="wikipedia.org"),
        BranchStep(query="portolan charts"),
        NoteStep(text="compare with Ptolemy"),
        BranchStep(query="mercator projection"),
        OpenStep(url="https://arxiv.org/abs/1", title="Projections", domain="arxiv.org"),
    ]:
        t = engine.append_step(t, step)
    return t


def test_json_export_round_trip(trail, tmp_path):
    path = export_trail_to_json(trail, tmp_path / "trail.json")

    imported = import_trail_from_json(path)

    assert imported.id == trail.id
    assert imported.steps == trail.steps
    assert imported.score == trail.score


def test_json_export_to_directory(trail, tmp_path):
    path = export_trail_to_json(trail, tmp_path)

    assert path == tmp_path / f"trail-{trail.id}.json"
    assert path.exists()


def test_import_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        import_trail_from_json(tmp_path / "nope.json")


def test_import_malformed_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('{"id": "x"}', encoding="utf-8")

    with pytest.raises(MalformedTrailData):
        import_trail_from_json(path)


def test_markdown_nests_steps_by_branch(trail):
    md = render_trail_markdown(trail)
    lines = md.splitlines()

    assert lines[0] == "# Trail: history of cartography"
    assert "- **#1** [Cartography](https://en.wikipedia.org/wiki/Cartography) `wikipedia.org`" in md
    assert any(line.startswith('- **#2** Branch: "portolan charts"') for line in lines)
    assert any(line.startswith("- **#3** Note: *compare with Ptolemy*") for line in lines)
    assert any(line.startswith('  - **#4** Branch: "mercator projection"') for line in lines)
    assert any(line.startswith("  - **#5** [Projections]") for line in lines)


def test_markdown_score_section(trail):
    md = render_trail_markdown(trail)

    assert f"## Exploration Score: {trail.score}" in md
    assert "| Same domain penalty | 0 | -5 | 0.0 |" in md
    assert f"*Trail ID: {trail.id}*" in md
    assert "Exploration Score" not in render_trail_markdown(trail, include_score=False)


def test_markdown_empty_trail():
    md = render_trail_markdown(engine.create_trail(""))

    assert md.startswith("# Trail: Untitled trail")
    assert "*No steps yet.*" in md


def test_export_markdown_file(trail, tmp_path):
    path = export_trail_to_markdown(trail, tmp_path / "out" / "trail.md")

    assert path.read_text(encoding="utf-8") == render_trail_markdown(trail)
