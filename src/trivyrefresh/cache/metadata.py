from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..errors import MetadataMalformed, MetadataNotFound, MetadataUnreadable, MetadataWriteFailed
from ..models import FreshnessRecord
from ..util.time import format_rfc3339, now_utc

LOGGER = logging.getLogger(__name__)
RETRY_DELAY = timedelta(hours=4)


def metadata_path(cache_dir: Path) -> Path:
    return cache_dir / "db" / "metadata.json"


def read_metadata(path: Path) -> FreshnessRecord:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise MetadataNotFound(path, "metadata file not found") from exc
    except OSError as exc:
        raise MetadataUnreadable(path, f"failed to read metadata file ({exc.strerror or exc})") from exc

    try:
        payload = json.loads(raw.decode("utf-8"))
        return FreshnessRecord.model_validate(payload)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise MetadataMalformed(path, f"failed to parse metadata JSON ({exc})") from exc


def write_metadata(path: Path, record: FreshnessRecord) -> None:
    """Overwrite ``path`` in place with the full record."""
    try:
        path.write_text(json.dumps(record.to_document(), separators=(",", ":")), encoding="utf-8")
    except OSError as exc:
        raise MetadataWriteFailed(path, f"failed to write updated metadata ({exc.strerror or exc})") from exc


def stamp_next_update(path: Path, now: Optional[datetime] = None) -> FreshnessRecord:
    """Push ``NextUpdate`` to ``now + 4h`` and leave every other field alone.

    Used after a rollback so the failed refresh is not retried on every
    invocation until then.
    """
    record = read_metadata(path)
    when = (now or now_utc()) + RETRY_DELAY
    stamped = record.with_next_update(when)
    write_metadata(path, stamped)
    LOGGER.info("Delay NextUpdate timestamp to: %s", format_rfc3339(when))
    return stamped
