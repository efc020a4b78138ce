# File: typespec_serializers/changes.py
"""
TypeSpec Serializers - Change Detection
=========================================
``ChangeSet`` accumulates added / removed / modified serializer source files
between two incremental generations.  ``ChangeTracker`` feeds it from a
``watchfiles`` watcher running on a daemon thread.

The watcher thread only ever calls ``ChangeSet.record``; every read returns a
snapshot taken under the same lock.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from watchfiles import Change, DefaultFilter, watch

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("typespec_serializers.changes")


class ChangeSet:
    """Thread-safe pending sets of changed source files."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._added: Set[Path] = set()
        self._removed: Set[Path] = set()
        self._modified: Set[Path] = set()

    def record(
        self,
        *,
        added: Iterable[Path] = (),
        removed: Iterable[Path] = (),
        modified: Iterable[Path] = (),
    ) -> None:
        """Merge one batch of notifications."""
        with self._lock:
            for path in added:
                path = Path(path)
                self._removed.discard(path)
                self._added.add(path)
            for path in modified:
                path = Path(path)
                self._removed.discard(path)
                if path not in self._added:
                    self._modified.add(path)
            for path in removed:
                path = Path(path)
                self._added.discard(path)
                self._modified.discard(path)
                self._removed.add(path)

    @property
    def updated(self) -> bool:
        with self._lock:
            return bool(self._added or self._removed or self._modified)

    @property
    def any_removed(self) -> bool:
        with self._lock:
            return bool(self._removed)

    @property
    def only_modified(self) -> bool:
        with self._lock:
            return not self._added and not self._removed

    @property
    def added_files(self) -> Set[Path]:
        with self._lock:
            return set(self._added)

    @property
    def removed_files(self) -> Set[Path]:
        with self._lock:
            return set(self._removed)

    @property
    def modified_files(self) -> Set[Path]:
        with self._lock:
            return set(self._modified)

    @property
    def changed_files(self) -> Set[Path]:
        """Added and modified files: the ones that need (re)loading."""
        with self._lock:
            return self._added | self._modified

    def drain(self) -> Tuple[Set[Path], Set[Path], Set[Path]]:
        """
        Take every pending path and empty the sets in one step.

        Returns ``(added, removed, modified)``.  Batches recorded afterwards
        stay pending for the next pass.
        """
        with self._lock:
            drained: Tuple[Set[Path], Set[Path], Set[Path]] = (
                self._added,
                self._removed,
                self._modified,
            )
            self._added, self._removed, self._modified = set(), set(), set()
            return drained

    def clear(self) -> None:
        with self._lock:
            self._added.clear()
            self._removed.clear()
            self._modified.clear()

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"<ChangeSet added={len(self._added)} removed={len(self._removed)} "
                f"modified={len(self._modified)}>"
            )


class PythonSourceFilter(DefaultFilter):
    """Only Python source files, outside ``__pycache__``."""

    def __call__(self, change: Change, path: str) -> bool:
        return path.endswith(".py") and super().__call__(change, path)


class ChangeTracker:
    """
    Watches serializer directories and records changes in a ``ChangeSet``.

    One watcher thread per tracker; ``stop()`` ends it.
    """

    def __init__(
        self,
        dirs: Sequence[Path],
        changes: Optional[ChangeSet] = None,
        *,
        debounce: int = 200,
    ) -> None:
        self.dirs: List[Path] = [Path(d) for d in dirs]
        self.changes: ChangeSet = changes if changes is not None else ChangeSet()
        self.debounce: int = debounce
        self._stop: threading.Event = threading.Event()
        self._batch: threading.Event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        existing: List[str] = [str(d) for d in self.dirs if d.is_dir()]
        if not existing:
            logger.warning("None of the serializer directories exist; not watching.")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(existing,), name="typespec-serializers-watch", daemon=True
        )
        self._thread.start()
        logger.info("Watching %s for serializer changes.", ", ".join(existing))

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self, dirs: List[str]) -> None:
        for batch in watch(
            *dirs,
            watch_filter=PythonSourceFilter(),
            debounce=self.debounce,
            stop_event=self._stop,
        ):
            self.handle_batch(batch)

    def handle_batch(self, batch: Iterable[Tuple[Change, str]]) -> None:
        """Convert one ``watchfiles`` batch and merge it into the change set."""
        added: List[Path] = []
        removed: List[Path] = []
        modified: List[Path] = []
        for change, path in batch:
            if change == Change.added:
                added.append(Path(path))
            elif change == Change.deleted:
                removed.append(Path(path))
            else:
                modified.append(Path(path))

        self.changes.record(added=added, removed=removed, modified=modified)
        logger.debug(
            "Change batch: %d added, %d removed, %d modified.", len(added), len(removed), len(modified)
        )
        self._batch.set()

    def wait_for_changes(self, timeout: Optional[float] = None) -> bool:
        """Block until a batch arrives; returns False on timeout."""
        arrived: bool = self._batch.wait(timeout)
        self._batch.clear()
        return arrived

    def __repr__(self) -> str:
        return f"<ChangeTracker dirs={[str(d) for d in self.dirs]} running={self.running}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ChangeSet",
    "ChangeTracker",
    "PythonSourceFilter",
]
