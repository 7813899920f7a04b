"""Export functionality for trails."""

from .json_export import export_trail_to_json, import_trail_from_json
from .markdown import export_trail_to_markdown, render_trail_markdown

__all__ = [
    "export_trail_to_json",
    "export_trail_to_markdown",
    "import_trail_from_json",
    "render_trail_markdown",
]
