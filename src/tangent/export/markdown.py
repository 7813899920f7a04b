"""
Markdown export for trails.

Produces a human-readable trail log with:
- Steps nested under the branch they follow
- Step timestamps
- Exploration score breakdown
"""

import logging
from datetime import datetime
from pathlib import Path

from ..trail.engine import compute_metrics, score_breakdown, step_depths
from ..trail.models import BranchStep, NoteStep, OpenStep, Trail, TrailStep

logger = logging.getLogger(__name__)


def _format_time(ts: datetime) -> str:
    return ts.strftime("%H:%M")


def _format_step(step: TrailStep, index: int) -> str:
    """Format a single step as a markdown list item (without indentation)."""
    time_str = _format_time(step.ts)

    if isinstance(step, OpenStep):
        return f"- **#{index}** [{step.title}]({step.url}) `{step.domain}` ({time_str})"
    elif isinstance(step, BranchStep):
        return f'- **#{index}** Branch: "{step.query}" ({time_str})'
    elif isinstance(step, NoteStep):
        return f"- **#{index}** Note: *{step.text}* ({time_str})"

    raise TypeError(f"Unknown step type: {type(step).__name__}")


def render_trail_markdown(trail: Trail, include_score: bool = True) -> str:
    """
    Render a trail as markdown.

    Args:
        trail: Trail to render
        include_score: Append the score breakdown table

    Returns:
        Markdown string
    """
    metrics = compute_metrics(trail.steps)
    title = trail.query or "Untitled trail"

    lines = [
        f"# Trail: {title}",
        "",
        f"*Started {trail.created_at.strftime('%Y-%m-%d %H:%M')} | "
        f"{len(trail.steps)} steps | {metrics.outbound_clicks} sources opened | "
        f"{len(metrics.unique_domains)} domains | depth {metrics.depth}*",
        "",
        "## Steps",
        "",
    ]

    if not trail.steps:
        lines.append("*No steps yet.*")
    for index, (depth, step) in enumerate(step_depths(trail.steps), 1):
        lines.append("  " * depth + _format_step(step, index))

    if include_score:
        breakdown = score_breakdown(trail.steps)
        lines.extend(
            [
                "",
                f"## Exploration Score: {breakdown.score}",
                "",
                "| Component | Value | Weight | Points |",
                "|---|---:|---:|---:|",
            ]
        )
        for label, value, weight, contribution in breakdown.components():
            lines.append(f"| {label} | {value} | {weight} | {contribution:.1f} |")

    lines.append("")
    lines.append(f"*Trail ID: {trail.id}*")
    return "\n".join(lines) + "\n"


def export_trail_to_markdown(trail: Trail, output_path: str | Path) -> Path:
    """Write the markdown rendering of a trail to a file."""
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(render_trail_markdown(trail), encoding="utf-8")

    logger.info(f"Exported trail {trail.id} as markdown to {output_file}")
    return output_file
