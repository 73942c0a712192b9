"""
Staleness checks deciding whether a generated file must be rebuilt.

Every processor asks needs_regeneration() before starting an external
renderer, so a second run over an unchanged document starts no processes.
Intermediate sources are written with write_if_changed() to keep their
mtimes stable when the content did not change.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def needs_regeneration(output_path: Path, input_path: Path) -> bool:
    """
    Check whether ``output_path`` is missing or older than ``input_path``.

    Any stat failure counts as stale: regenerating too often is preferred
    over serving an out-of-date artifact.
    """
    try:
        if not output_path.exists() or not input_path.exists():
            return True
        return input_path.stat().st_mtime > output_path.stat().st_mtime
    except OSError as e:
        logger.debug(f"Cannot stat {output_path} or {input_path}: {e}")
        return True


def has_content_changed(path: Path, content: str) -> bool:
    """True if ``path`` is missing, unreadable or holds different text."""
    try:
        return path.read_text(encoding="utf-8") != content
    except (OSError, UnicodeDecodeError):
        return True


def write_if_changed(path: Path, content: str) -> bool:
    """
    Write ``content`` only when it differs from what is on disk.

    Returns:
        True if the file was written
    """
    if not has_content_changed(path, content):
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True
