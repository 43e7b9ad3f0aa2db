"""
Local workspace cleanup: Gradle output directories and archived artifacts.
"""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

ARTIFACT_EXTENSIONS = {"apk", "aab", "ipa", "app"}


def nuke_build(working_dir: Path) -> str:
    """
    Delete Android build output and the project-local Gradle cache.

    Returns:
        A short report naming what was removed.
    """
    android_dir = Path(working_dir) / "android"
    targets = [
        android_dir / "app" / "build",
        android_dir / "build",
        android_dir / ".gradle",
    ]

    removed = []
    failed = []
    for target in targets:
        if not target.exists():
            continue
        logger.info(f"Removing {target}")
        try:
            shutil.rmtree(target)
            removed.append(target.name)
        except OSError as e:
            logger.error(f"Failed to remove {target}: {e}")
            failed.append(target.name)

    if not removed and not failed:
        return "Nothing to nuke! (Clean)"

    report = f"Nuked: {', '.join(removed)}" if removed else "Nuked: nothing"
    if failed:
        report += f" (Failed: {', '.join(failed)})"
    return f"{report} ({len(removed)} items)"


def clear_archive(archive_dir: Path) -> str:
    """Delete archived build artifacts, leaving any other files alone."""
    archive_dir = Path(archive_dir)
    if not archive_dir.exists():
        return "Archive folder doesn't exist."

    deleted = 0
    for entry in archive_dir.iterdir():
        if not entry.is_file():
            continue
        if entry.suffix.lstrip(".").lower() not in ARTIFACT_EXTENSIONS:
            logger.debug(f"Skipping non-artifact {entry.name}")
            continue
        try:
            entry.unlink()
            deleted += 1
        except OSError as e:
            logger.error(f"Failed to delete {entry}: {e}")

    if deleted == 0:
        return "No artifacts to clear."
    return f"Cleared {deleted} artifact(s)"
