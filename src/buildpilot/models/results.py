"""
Result data models.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class BuildStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class BuildOutcome:
    """
    Terminal result of a build or recovery run.

    ``log_path`` points at the persisted transcript on both branches; it is
    only None when no transcript was kept (recovery runs) or writing it
    failed.
    """

    status: BuildStatus
    message: str
    log_path: Optional[Path] = None
    exit_code: Optional[int] = None
    # Set for failures that aborted before the build command ran to completion.
    error_kind: Optional[str] = None
    artifact_path: Optional[Path] = None
    artifact_fresh: Optional[bool] = None

    @classmethod
    def success(cls, message: str, log_path: Optional[Path] = None, **kwargs) -> "BuildOutcome":
        return cls(BuildStatus.SUCCESS, message, log_path=log_path, **kwargs)

    @classmethod
    def failure(cls, reason: str, log_path: Optional[Path] = None, **kwargs) -> "BuildOutcome":
        return cls(BuildStatus.FAILURE, reason, log_path=log_path, **kwargs)

    @property
    def succeeded(self) -> bool:
        return self.status is BuildStatus.SUCCESS

    def summary(self) -> str:
        """One line for the user, always naming where the transcript lives."""
        if self.log_path is not None:
            return f"{self.message} (log: {self.log_path})"
        return self.message
