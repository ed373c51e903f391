from pathlib import Path
from typing import Optional


class AvifyError(Exception):
    """Base class for errors raised by avify."""


class ConfigurationError(AvifyError):
    """Raised when settings are invalid or a required encoder is unavailable."""


class TraversalError(AvifyError):
    """Raised when the root cannot be walked. Aborts the run before scheduling."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class TaskError(AvifyError):
    """Failure of a single transform step. Folded into a TaskFailure, never propagated."""

    def __init__(self, stage, path: Path, message: str):
        super().__init__(message)
        self.stage = stage
        self.path = path
