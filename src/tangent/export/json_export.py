"""
JSON file export and import for trails.

The file content is exactly the engine's text form, so exported files can
be re-imported or shared and always have their score recomputed.
"""

import logging
from pathlib import Path

from ..trail.engine import export_to_text, import_from_text
from ..trail.errors import MalformedTrailData
from ..trail.models import Trail

logger = logging.getLogger(__name__)


def default_export_filename(trail: Trail) -> str:
    return f"trail-{trail.id}.json"


def export_trail_to_json(trail: Trail, output_path: str | Path) -> Path:
    """
    Write a trail to a JSON file.

    Args:
        trail: Trail to export
        output_path: File path, or a directory to place trail-<id>.json in

    Returns:
        Path of the written file
    """
    output_file = Path(output_path)
    if output_file.is_dir():
        output_file = output_file / default_export_filename(trail)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(export_to_text(trail) + "\n", encoding="utf-8")

    logger.info(f"Exported trail {trail.id} ({len(trail.steps)} steps) to {output_file}")
    return output_file


def import_trail_from_json(input_path: str | Path) -> Trail:
    """
    Read a trail from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        MalformedTrailData: If the content is not a valid trail
    """
    input_file = Path(input_path)
    if not input_file.exists():
        raise FileNotFoundError(f"Trail file not found: {input_file}")

    try:
        text = input_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedTrailData(f"Trail file is not UTF-8 text: {e}") from e

    return import_from_text(text)
