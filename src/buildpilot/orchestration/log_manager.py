"""
Log management for the orchestration module.

Every build transcript is written to a timestamped file whether the build
succeeded or not. The file name carries the outcome and the target, so logs
can be told apart without opening them:
``<log_dir>/<success|fail>_<target>_<YYYY-mm-dd_HH-MM-SS>.log``.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..validation import ErrorSeverity, PersistenceError, handle_file_error

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
SUCCESS_PREFIX = "success"
FAILURE_PREFIX = "fail"


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


class LogManager:
    """
    Writes build transcripts into one log directory.

    Args:
        log_dir: Directory receiving log files; created on first write.
    """

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)

    def log_path_for(self, succeeded: bool, target: str, now: Optional[datetime] = None) -> Path:
        prefix = SUCCESS_PREFIX if succeeded else FAILURE_PREFIX
        return self.log_dir / f"{prefix}_{target}_{timestamp(now)}.log"

    def write_log(self, contents: str, succeeded: bool, target: str) -> Path:
        """
        Write a transcript to disk.

        Returns:
            The path written.

        Raises:
            PersistenceError: If the directory or file cannot be written.
        """
        path = self.log_path_for(succeeded, target)
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to write log {path}: {e}") from e
        logger.info(f"Log saved to: {path}")
        return path

    def persist(self, contents: str, succeeded: bool, target: str) -> Optional[Path]:
        """
        Best-effort variant of :meth:`write_log`.

        A failed write is logged and reported as None; it never turns a
        build into a failure.
        """
        try:
            return self.write_log(contents, succeeded, target)
        except PersistenceError as e:
            handle_file_error(
                error=e,
                context=f"persisting {target} build log",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            return None
