"""
tests/test_changes.py
Unit tests for typespec_serializers.changes.

Batches are fed directly to ``ChangeTracker.handle_batch``; no watcher
thread is started.
"""

from __future__ import annotations

import pathlib
import threading

from watchfiles import Change

from typespec_serializers.changes import ChangeSet, ChangeTracker, PythonSourceFilter


class TestChangeSet:
    def test_starts_empty(self) -> None:
        changes = ChangeSet()
        assert not changes.updated
        assert not changes.any_removed
        assert changes.only_modified

    def test_record_and_query(self) -> None:
        changes = ChangeSet()
        changes.record(added=[pathlib.Path("a.py")], modified=[pathlib.Path("b.py")])

        assert changes.updated
        assert not changes.only_modified
        assert changes.added_files == {pathlib.Path("a.py")}
        assert changes.modified_files == {pathlib.Path("b.py")}
        assert changes.changed_files == {pathlib.Path("a.py"), pathlib.Path("b.py")}

    def test_sets_stay_disjoint(self) -> None:
        changes = ChangeSet()
        changes.record(added=[pathlib.Path("a.py")])
        changes.record(modified=[pathlib.Path("a.py")])
        assert changes.modified_files == set()

        changes.record(removed=[pathlib.Path("a.py")])
        assert changes.added_files == set()
        assert changes.removed_files == {pathlib.Path("a.py")}
        assert changes.any_removed

    def test_queries_return_snapshots(self) -> None:
        changes = ChangeSet()
        changes.record(modified=[pathlib.Path("b.py")])
        snapshot = changes.modified_files
        snapshot.add(pathlib.Path("c.py"))
        assert changes.modified_files == {pathlib.Path("b.py")}

    def test_drain_takes_everything_pending(self) -> None:
        changes = ChangeSet()
        changes.record(
            added=[pathlib.Path("a.py")],
            removed=[pathlib.Path("b.py")],
            modified=[pathlib.Path("c.py")],
        )

        added, removed, modified = changes.drain()

        assert added == {pathlib.Path("a.py")}
        assert removed == {pathlib.Path("b.py")}
        assert modified == {pathlib.Path("c.py")}
        assert not changes.updated

    def test_records_after_drain_stay_pending(self) -> None:
        changes = ChangeSet()
        changes.record(modified=[pathlib.Path("a.py")])
        added, _removed, _modified = changes.drain()
        changes.record(added=[pathlib.Path("late.py")])

        assert added == set()
        assert changes.added_files == {pathlib.Path("late.py")}

    def test_clear_in_place(self) -> None:
        changes = ChangeSet()
        changes.record(removed=[pathlib.Path("a.py")])
        changes.clear()
        assert not changes.updated

    def test_concurrent_records(self) -> None:
        changes = ChangeSet()

        def worker(offset: int) -> None:
            for i in range(200):
                changes.record(modified=[pathlib.Path(f"{offset}-{i}.py")])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(changes.modified_files) == 800


class TestChangeTracker:
    def test_handle_batch_maps_change_kinds(self, tmp_path: pathlib.Path) -> None:
        tracker = ChangeTracker([tmp_path])
        tracker.handle_batch(
            {
                (Change.added, str(tmp_path / "new.py")),
                (Change.deleted, str(tmp_path / "old.py")),
                (Change.modified, str(tmp_path / "song.py")),
            }
        )

        assert tracker.changes.added_files == {tmp_path / "new.py"}
        assert tracker.changes.removed_files == {tmp_path / "old.py"}
        assert tracker.changes.modified_files == {tmp_path / "song.py"}

    def test_shares_the_given_change_set(self, tmp_path: pathlib.Path) -> None:
        changes = ChangeSet()
        tracker = ChangeTracker([tmp_path], changes)
        tracker.handle_batch([(Change.modified, str(tmp_path / "song.py"))])
        assert changes.updated

    def test_wait_for_changes(self, tmp_path: pathlib.Path) -> None:
        tracker = ChangeTracker([tmp_path])
        assert tracker.wait_for_changes(timeout=0.01) is False
        tracker.handle_batch([(Change.modified, str(tmp_path / "song.py"))])
        assert tracker.wait_for_changes(timeout=0.01) is True

    def test_start_without_directories_does_nothing(self, tmp_path: pathlib.Path) -> None:
        tracker = ChangeTracker([tmp_path / "missing"])
        tracker.start()
        assert not tracker.running
        tracker.stop()


class TestPythonSourceFilter:
    def test_only_python_sources(self, tmp_path: pathlib.Path) -> None:
        source_filter = PythonSourceFilter()
        assert source_filter(Change.modified, str(tmp_path / "song.py"))
        assert not source_filter(Change.modified, str(tmp_path / "notes.txt"))
        assert not source_filter(Change.modified, str(tmp_path / "__pycache__" / "song.py"))
