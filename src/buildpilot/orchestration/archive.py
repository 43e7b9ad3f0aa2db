"""
Artifact archiving.

After a successful Android build the produced APK/AAB is copied into an
archive directory under a timestamped name. The artifact's modification
time tells whether Gradle produced it now or reused a cached output; that
distinction is reported to the user but never affects the build result.
"""

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..validation import ErrorSeverity, PersistenceError, handle_file_error
from .log_manager import timestamp

logger = logging.getLogger(__name__)

DEFAULT_FRESH_WINDOW = 120.0


@dataclass
class ArchiveResult:
    source: Path
    fresh: bool
    # None when the copy failed.
    archived_path: Optional[Path] = None


def is_fresh(path: Path, window: float = DEFAULT_FRESH_WINDOW, now: Optional[float] = None) -> bool:
    """True if ``path`` was modified less than ``window`` seconds ago."""
    try:
        modified = path.stat().st_mtime
    except OSError:
        return False
    age = (now if now is not None else time.time()) - modified
    return age < window


def archive_artifact(
    source: Path,
    archive_dir: Path,
    extension: str,
    fresh_window: float = DEFAULT_FRESH_WINDOW,
) -> Optional[ArchiveResult]:
    """
    Copy a build artifact into the archive.

    Returns:
        None if ``source`` does not exist; otherwise an ArchiveResult whose
        ``archived_path`` is None when the copy failed.
    """
    source = Path(source)
    if not source.exists():
        logger.info(f"No artifact found at {source}")
        return None

    fresh = is_fresh(source, fresh_window)
    result = ArchiveResult(source=source, fresh=fresh)

    destination = Path(archive_dir) / f"{source.stem}_{timestamp()}.{extension}"
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        result.archived_path = destination
        logger.info(f"Artifact archived to {destination} ({'fresh' if fresh else 'cached'})")
    except OSError as e:
        handle_file_error(
            error=PersistenceError(f"Failed to archive {source}: {e}"),
            context="archiving build artifact",
            severity=ErrorSeverity.WARNING,
            reraise=False,
            logger=logger,
        )
    return result
