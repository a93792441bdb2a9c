from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Protocol

from .errors import ExecutionFailed

LOGGER = logging.getLogger(__name__)


class RefreshExecutor(Protocol):
    def run(self, cache_dir: Path) -> None:  # pragma: no cover - structural contract
        """Refresh ``cache_dir`` in place or raise ``ExecutionFailed``."""
        ...


class TrivyExecutor:
    """Runs ``trivy image --download-db-only`` against a cache directory.

    No timeout is applied; the call blocks until the tool exits.
    """

    def __init__(self, binary: str = "trivy") -> None:
        self.binary = binary

    def command(self, cache_dir: Path) -> List[str]:
        return [self.binary, "image", "--cache-dir", str(cache_dir), "--download-db-only"]

    def run(self, cache_dir: Path) -> None:
        cmd = self.command(cache_dir)
        LOGGER.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ExecutionFailed(f"trivy command failed: {exc}") from exc

        if proc.returncode != 0:
            raise ExecutionFailed(
                f"trivy command failed: exit status {proc.returncode}",
                diagnostics=proc.stderr or "",
                returncode=proc.returncode,
            )
