from __future__ import annotations

from pathlib import Path
from typing import Optional


class RefreshError(Exception):
    """Base class for every failure a refresh cycle can report."""


class ConfigurationError(RefreshError):
    pass


class MetadataError(RefreshError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class MetadataNotFound(MetadataError):
    pass


class MetadataUnreadable(MetadataError):
    pass


class MetadataMalformed(MetadataError):
    pass


class MetadataWriteFailed(MetadataError):
    pass


class CopyFailed(RefreshError):
    def __init__(self, src: Path, dst: Path, reason: str) -> None:
        self.src = src
        self.dst = dst
        super().__init__(f"failed to copy {src} -> {dst}: {reason}")


class BackupFailed(RefreshError):
    pass


class RestoreFailed(RefreshError):
    pass


class ExecutionFailed(RefreshError):
    """The external update tool could not be run or exited non-zero."""

    def __init__(self, message: str, diagnostics: str = "", returncode: Optional[int] = None) -> None:
        self.diagnostics = diagnostics
        self.returncode = returncode
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.diagnostics:
            return base
        return f"{base}\nError output:\n{self.diagnostics}"
