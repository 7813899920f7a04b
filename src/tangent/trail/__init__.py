"""Trail engine: step log, derived metrics and exploration score."""

from .engine import (
    ScoreBreakdown,
    append_step,
    compute_metrics,
    create_trail,
    exploration_score,
    export_to_text,
    import_from_text,
    load_trail,
    score_breakdown,
    step_depths,
)
from .errors import MalformedTrailData, PersistenceFailure, TrailError, TrailNotFound
from .models import BranchStep, NoteStep, OpenStep, SourceCard, Trail, TrailMetrics, TrailStep

__all__ = [
    "BranchStep",
    "MalformedTrailData",
    "NoteStep",
    "OpenStep",
    "PersistenceFailure",
    "ScoreBreakdown",
    "SourceCard",
    "Trail",
    "TrailError",
    "TrailMetrics",
    "TrailNotFound",
    "TrailStep",
    "append_step",
    "compute_metrics",
    "create_trail",
    "exploration_score",
    "export_to_text",
    "import_from_text",
    "load_trail",
    "score_breakdown",
    "step_depths",
]
