import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from trivyrefresh.util.time import format_rfc3339

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


def tree_snapshot(root: Path) -> dict[str, bytes]:
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def metadata_doc(next_update: datetime) -> dict:
    return {
        "Version": 2,
        "NextUpdate": format_rfc3339(next_update),
        "UpdatedAt": "2026-10-18T06:12:34.123456789Z",
        "DownloadedAt": "2026-10-18T06:30:01.5Z",
    }


def write_doc(cache_dir: Path, doc: dict) -> Path:
    path = cache_dir / "db" / "metadata.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    root = tmp_path / "trivy"
    (root / "db").mkdir(parents=True)
    (root / "db" / "trivy.db").write_bytes(b"\x00old-db-content\xff")
    (root / "fanal").mkdir()
    (root / "fanal" / "fanal.db").write_bytes(b"fanal")
    return root


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    return tmp_path / "trivy_save"


@pytest.fixture
def due_metadata(cache_dir: Path) -> dict:
    doc = metadata_doc(NOW - timedelta(hours=1))
    write_doc(cache_dir, doc)
    return doc
