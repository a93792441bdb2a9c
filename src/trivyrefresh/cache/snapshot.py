from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..errors import BackupFailed, CopyFailed, RestoreFailed

LOGGER = logging.getLogger(__name__)


def copy_tree(src: Path, dst: Path) -> None:
    """Recursively duplicate ``src`` into ``dst``, creating ``dst`` as needed.

    Symlinks are followed and their targets' content copied. The first error
    aborts the copy; whatever was already written to ``dst`` stays there.
    """
    try:
        dst.mkdir(parents=True, exist_ok=True)
        entries = list(src.iterdir())
    except OSError as exc:
        raise CopyFailed(src, dst, exc.strerror or str(exc)) from exc

    for entry in entries:
        target = dst / entry.name
        if entry.is_dir():
            copy_tree(entry, target)
            continue
        try:
            shutil.copyfile(entry, target)
        except OSError as exc:
            raise CopyFailed(entry, target, exc.strerror or str(exc)) from exc


def remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


class SnapshotManager:
    """Single-slot, whole-directory snapshots of the cache."""

    def __init__(self, backup_dir: Path) -> None:
        self.backup_dir = backup_dir

    def has_backup(self) -> bool:
        return self.backup_dir.is_dir()

    def backup(self, cache_dir: Path) -> None:
        try:
            if not cache_dir.exists():
                LOGGER.info("Cache directory %s does not exist yet; creating it empty", cache_dir)
                cache_dir.mkdir(parents=True)
            remove_tree(self.backup_dir)
            self.backup_dir.mkdir(parents=True)
            copy_tree(cache_dir, self.backup_dir)
        except (OSError, CopyFailed) as exc:
            raise BackupFailed(f"failed to back up {cache_dir} to {self.backup_dir}: {exc}") from exc
        LOGGER.info("Successfully backed up %s to %s", cache_dir, self.backup_dir)

    def restore(self, cache_dir: Path) -> None:
        if not self.has_backup():
            raise RestoreFailed(f"no backup found at {self.backup_dir}; {cache_dir} left as is")

        try:
            remove_tree(cache_dir)
        except OSError as exc:
            raise RestoreFailed(f"failed to remove current directory {cache_dir}: {exc}") from exc

        # cache_dir is absent until the copy below finishes
        try:
            copy_tree(self.backup_dir, cache_dir)
        except CopyFailed as exc:
            raise RestoreFailed(f"failed to restore {cache_dir} from {self.backup_dir}: {exc}") from exc
        LOGGER.info("Successfully restored %s from %s", cache_dir, self.backup_dir)
