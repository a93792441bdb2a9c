from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .util.time import format_rfc3339, parse_rfc3339


class FreshnessRecord(BaseModel):
    """The scanner's ``db/metadata.json`` document.

    Timestamps are kept as the strings found on disk so that a rewrite only
    changes ``NextUpdate``; unknown keys are carried along untouched.
    """

    schema_version: int = Field(default=0, alias="Version", strict=True)
    next_update: str = Field(alias="NextUpdate")
    updated_at: Optional[str] = Field(default=None, alias="UpdatedAt")
    downloaded_at: Optional[str] = Field(default=None, alias="DownloadedAt")

    model_config = {
        "extra": "allow",
    }

    @field_validator("next_update", "updated_at", "downloaded_at")
    @classmethod
    def _must_be_rfc3339(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_rfc3339(value)
        return value

    @property
    def next_update_at(self) -> datetime:
        return parse_rfc3339(self.next_update)

    def with_next_update(self, when: datetime) -> "FreshnessRecord":
        return self.model_copy(update={"next_update": format_rfc3339(when)})

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(by_alias=True)
        # keys absent from the source file stay absent
        for name, field in type(self).model_fields.items():
            if name not in self.model_fields_set:
                document.pop(field.alias or name, None)
        return document


class CycleStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    REFRESHED = "refreshed"
    REPORT_FAILED = "report_failed"
    UPDATE_FAILED = "update_failed"
    BACKUP_FAILED = "backup_failed"
    RESTORE_FAILED = "restore_failed"
    RESTAMP_FAILED = "restamp_failed"


class ExitCode(IntEnum):
    OK = 0
    UPDATE_FAILED = 3
    BACKUP_FAILED = 4
    RESTORE_FAILED = 5
    RESTAMP_FAILED = 6
    REPORT_FAILED = 7
    CONFIG_INVALID = 8


_EXIT_CODES = {
    CycleStatus.UP_TO_DATE: ExitCode.OK,
    CycleStatus.REFRESHED: ExitCode.OK,
    CycleStatus.REPORT_FAILED: ExitCode.REPORT_FAILED,
    CycleStatus.UPDATE_FAILED: ExitCode.UPDATE_FAILED,
    CycleStatus.BACKUP_FAILED: ExitCode.BACKUP_FAILED,
    CycleStatus.RESTORE_FAILED: ExitCode.RESTORE_FAILED,
    CycleStatus.RESTAMP_FAILED: ExitCode.RESTAMP_FAILED,
}


@dataclass(slots=True)
class CycleOutcome:
    status: CycleStatus
    message: str
    next_update_at: Optional[datetime] = None
    metadata_issue: Optional[str] = None
    backup_taken: bool = False
    rolled_back: bool = False
    diagnostics: str = ""

    @property
    def exit_code(self) -> ExitCode:
        return _EXIT_CODES[self.status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "next_update_at": format_rfc3339(self.next_update_at) if self.next_update_at else None,
            "metadata_issue": self.metadata_issue,
            "backup_taken": self.backup_taken,
            "rolled_back": self.rolled_back,
            "diagnostics": self.diagnostics,
            "exit_code": int(self.exit_code),
        }
