import pytest

from conftest import tree_snapshot
from trivyrefresh.cache.snapshot import SnapshotManager, copy_tree, remove_tree
from trivyrefresh.errors import BackupFailed, CopyFailed, RestoreFailed


def test_copy_tree_replicates_nested_content(cache_dir, tmp_path):
    (cache_dir / "fanal" / "deep" / "er").mkdir(parents=True)
    (cache_dir / "fanal" / "deep" / "er" / "blob").write_bytes(b"blob")
    dst = tmp_path / "copy" / "nested"

    copy_tree(cache_dir, dst)

    assert tree_snapshot(dst) == tree_snapshot(cache_dir)


def test_copy_tree_missing_source_fails(tmp_path):
    with pytest.raises(CopyFailed):
        copy_tree(tmp_path / "nope", tmp_path / "dst")


def test_remove_tree_tolerates_missing_path(tmp_path):
    remove_tree(tmp_path / "nope")
    assert not (tmp_path / "nope").exists()


def test_backup_copies_cache(cache_dir, backup_dir):
    SnapshotManager(backup_dir).backup(cache_dir)
    assert tree_snapshot(backup_dir) == tree_snapshot(cache_dir)


def test_backup_discards_previous_backup(cache_dir, backup_dir):
    backup_dir.mkdir()
    (backup_dir / "stale.db").write_bytes(b"stale")
    snapshots = SnapshotManager(backup_dir)

    snapshots.backup(cache_dir)
    first = tree_snapshot(backup_dir)
    snapshots.backup(cache_dir)

    assert not (backup_dir / "stale.db").exists()
    assert tree_snapshot(backup_dir) == first == tree_snapshot(cache_dir)


def test_backup_creates_missing_cache_dir(tmp_path, backup_dir):
    cache_dir = tmp_path / "fresh"
    SnapshotManager(backup_dir).backup(cache_dir)
    assert cache_dir.is_dir()
    assert backup_dir.is_dir()
    assert tree_snapshot(backup_dir) == {}


def test_backup_failure_leaves_cache_untouched(tmp_path, backup_dir):
    cache_file = tmp_path / "not-a-dir"
    cache_file.write_bytes(b"data")
    with pytest.raises(BackupFailed):
        SnapshotManager(backup_dir).backup(cache_file)
    assert cache_file.read_bytes() == b"data"


def test_restore_brings_back_backup_state(cache_dir, backup_dir):
    before = tree_snapshot(cache_dir)
    snapshots = SnapshotManager(backup_dir)
    snapshots.backup(cache_dir)

    (cache_dir / "db" / "trivy.db").write_bytes(b"half-written")
    (cache_dir / "db" / "partial.tmp").write_bytes(b"junk")
    (cache_dir / "fanal" / "fanal.db").unlink()

    snapshots.restore(cache_dir)

    assert tree_snapshot(cache_dir) == before
    assert tree_snapshot(backup_dir) == before


def test_restore_without_backup_keeps_cache(cache_dir, backup_dir):
    before = tree_snapshot(cache_dir)
    with pytest.raises(RestoreFailed):
        SnapshotManager(backup_dir).restore(cache_dir)
    assert tree_snapshot(cache_dir) == before
