from datetime import timedelta

from conftest import NOW, metadata_doc
from trivyrefresh.models import CycleOutcome, CycleStatus, ExitCode, FreshnessRecord


def test_every_failure_kind_has_its_own_exit_code():
    failures = [status for status in CycleStatus if status not in (CycleStatus.UP_TO_DATE, CycleStatus.REFRESHED)]
    codes = {CycleOutcome(status=status, message="").exit_code for status in failures}
    assert len(codes) == len(failures)
    assert ExitCode.OK not in codes


def test_with_next_update_writes_utc_z_suffix():
    record = FreshnessRecord.model_validate(metadata_doc(NOW))
    moved = record.with_next_update(NOW + timedelta(hours=4))
    assert moved.next_update == "2026-10-18T16:00:00Z"
    assert moved.updated_at == record.updated_at
    assert record.next_update_at == NOW


def test_outcome_to_dict():
    outcome = CycleOutcome(status=CycleStatus.UP_TO_DATE, message="ok", next_update_at=NOW)
    assert outcome.to_dict() == {
        "status": "up_to_date",
        "message": "ok",
        "next_update_at": "2026-10-18T12:00:00Z",
        "metadata_issue": None,
        "backup_taken": False,
        "rolled_back": False,
        "diagnostics": "",
        "exit_code": 0,
    }
