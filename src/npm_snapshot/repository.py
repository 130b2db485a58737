"""Snapshot record stores.

``SnapshotRepository`` is the contract the capture service depends on. The
in-memory implementation backs tests and embedding; the JSON-file
implementation persists history between CLI runs and is safe to share
between processes.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any, ContextManager, Protocol

from .errors import RepositoryError
from .models import (
    ExecutionSnapshot,
    SnapshotDependency,
    SnapshotFilter,
    SnapshotWithDependencies,
)

if platform.system() == "Windows":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

DEFAULT_KEEP_PER_PROJECT = 10
INDEX_FILENAME = "snapshots.json"
LOCK_SUFFIX = ".lock"


class SnapshotRepository(Protocol):
    """Structural contract for snapshot persistence."""

    def create_snapshot(self, snapshot: ExecutionSnapshot) -> None: ...

    def update_snapshot(self, snapshot: ExecutionSnapshot) -> None: ...

    def add_dependencies(self, dependencies: Iterable[SnapshotDependency]) -> list[SnapshotDependency]: ...

    def get_snapshot(self, snapshot_id: str) -> ExecutionSnapshot | None: ...

    def get_dependencies(self, snapshot_id: str) -> list[SnapshotDependency]: ...


class InMemorySnapshotRepository:
    """Thread-safe, append-only snapshot store held in process memory.

    Every mutation runs inside ``_writing()``: state is refreshed, changed,
    then committed. A ``RepositoryError`` from the commit restores the state
    seen before the change.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, ExecutionSnapshot] = {}
        self._dependencies: dict[str, list[SnapshotDependency]] = {}
        self._next_dependency_id = 1

    # Hooks for subclasses that persist state; all are called with the lock held.
    def _refresh(self) -> None:
        pass

    def _commit(self) -> None:
        pass

    def _exclusive(self) -> ContextManager[None]:
        return nullcontext()

    @contextmanager
    def _reading(self) -> Iterator[None]:
        with self._lock:
            self._refresh()
            yield

    @contextmanager
    def _writing(self) -> Iterator[None]:
        with self._lock, self._exclusive():
            self._refresh()
            saved = (dict(self._snapshots), dict(self._dependencies), self._next_dependency_id)
            try:
                yield
                self._commit()
            except RepositoryError:
                self._snapshots, self._dependencies, self._next_dependency_id = saved
                raise

    def create_snapshot(self, snapshot: ExecutionSnapshot) -> None:
        with self._writing():
            if snapshot.id in self._snapshots:
                raise RepositoryError(f"Snapshot {snapshot.id} already exists")
            self._snapshots[snapshot.id] = snapshot.copy()

    def update_snapshot(self, snapshot: ExecutionSnapshot) -> None:
        with self._writing():
            current = self._snapshots.get(snapshot.id)
            if current is None:
                raise RepositoryError(f"Snapshot {snapshot.id} not found")
            if current.status.is_terminal:
                raise RepositoryError(
                    f"Snapshot {snapshot.id} is {current.status.value} and cannot be modified"
                )
            self._snapshots[snapshot.id] = snapshot.copy()

    def add_dependencies(
        self, dependencies: Iterable[SnapshotDependency]
    ) -> list[SnapshotDependency]:
        """Insert one snapshot's dependency rows in a single batch.

        Returns the rows with their assigned ids.
        """
        rows = list(dependencies)
        if not rows:
            return []
        snapshot_ids = {dep.snapshot_id for dep in rows}
        if len(snapshot_ids) != 1:
            raise RepositoryError("A dependency batch must belong to exactly one snapshot")
        (snapshot_id,) = snapshot_ids

        with self._writing():
            if snapshot_id not in self._snapshots:
                raise RepositoryError(f"Snapshot {snapshot_id} not found")
            if snapshot_id in self._dependencies:
                raise RepositoryError(f"Dependencies for snapshot {snapshot_id} already recorded")
            first_id = self._next_dependency_id
            stored = [dep.with_id(first_id + offset) for offset, dep in enumerate(rows)]
            self._dependencies[snapshot_id] = stored
            self._next_dependency_id = first_id + len(stored)
        return list(stored)

    def get_snapshot(self, snapshot_id: str) -> ExecutionSnapshot | None:
        with self._reading():
            snapshot = self._snapshots.get(snapshot_id)
            return snapshot.copy() if snapshot else None

    def get_dependencies(self, snapshot_id: str) -> list[SnapshotDependency]:
        with self._reading():
            return list(self._dependencies.get(snapshot_id, []))

    def get_snapshot_with_dependencies(self, snapshot_id: str) -> SnapshotWithDependencies | None:
        with self._reading():
            snapshot = self._snapshots.get(snapshot_id)
            if snapshot is None:
                return None
            return SnapshotWithDependencies(
                snapshot=snapshot.copy(),
                dependencies=tuple(self._dependencies.get(snapshot_id, [])),
            )

    def list_snapshots(self, snapshot_filter: SnapshotFilter | None = None) -> list[ExecutionSnapshot]:
        """Return matching snapshots, newest first."""
        snapshot_filter = snapshot_filter or SnapshotFilter()
        with self._reading():
            matches = [s.copy() for s in self._snapshots.values() if snapshot_filter.matches(s)]
        matches.sort(key=lambda s: s.created_at, reverse=True)
        end = None if snapshot_filter.limit is None else snapshot_filter.offset + snapshot_filter.limit
        return matches[snapshot_filter.offset:end]

    def get_latest_snapshot(self, project_path: str) -> ExecutionSnapshot | None:
        latest = self.list_snapshots(SnapshotFilter(project_path=project_path, limit=1))
        return latest[0] if latest else None

    def delete_snapshot(self, snapshot_id: str) -> bool:
        with self._writing():
            if self._snapshots.pop(snapshot_id, None) is None:
                return False
            self._dependencies.pop(snapshot_id, None)
        return True

    def prune_snapshots(self, keep_per_project: int = DEFAULT_KEEP_PER_PROJECT) -> list[str]:
        """Delete all but the newest ``keep_per_project`` snapshots of each project."""
        if keep_per_project < 0:
            raise ValueError("keep_per_project must be non-negative")
        removed: list[str] = []
        with self._writing():
            by_project: dict[str, list[ExecutionSnapshot]] = {}
            for snapshot in self._snapshots.values():
                by_project.setdefault(snapshot.project_path, []).append(snapshot)
            for snapshots in by_project.values():
                snapshots.sort(key=lambda s: s.created_at, reverse=True)
                for snapshot in snapshots[keep_per_project:]:
                    del self._snapshots[snapshot.id]
                    self._dependencies.pop(snapshot.id, None)
                    removed.append(snapshot.id)
        logger.info("Pruned %d snapshot(s)", len(removed))
        return removed


@contextmanager
def _file_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``path`` for the duration of the block."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(path, "a+b")
    except OSError as exc:
        raise RepositoryError(f"Failed to open lock file {path}: {exc}") from exc

    with handle:
        try:
            if platform.system() == "Windows":
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
            else:
                fcntl.flock(handle, fcntl.LOCK_EX)
        except OSError as exc:
            raise RepositoryError(f"Failed to lock {path}: {exc}") from exc
        try:
            yield
        finally:
            if platform.system() == "Windows":
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(handle, fcntl.LOCK_UN)


class JsonFileSnapshotRepository(InMemorySnapshotRepository):
    """Snapshot store persisted to a single JSON document.

    Writers serialize on ``<index>.lock``, re-read the index, apply their
    change and rewrite it through a temporary file and ``os.replace``.
    Several processes can therefore share one index without losing records,
    and readers always see either the old or the new document.
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self.path = Path(path).expanduser()
        self.lock_path = self.path.with_name(self.path.name + LOCK_SUFFIX)
        self._load()

    @classmethod
    def in_directory(cls, directory: Path | str) -> JsonFileSnapshotRepository:
        return cls(Path(directory).expanduser() / INDEX_FILENAME)

    def _load(self) -> None:
        if not self.path.exists():
            self._snapshots, self._dependencies, self._next_dependency_id = {}, {}, 1
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            snapshots = [ExecutionSnapshot.from_dict(item) for item in data.get("snapshots", [])]
            dependencies = {
                snapshot_id: [SnapshotDependency.from_dict(item) for item in rows]
                for snapshot_id, rows in data.get("dependencies", {}).items()
            }
            next_dependency_id = int(data.get("nextDependencyId", 1))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise RepositoryError(f"Failed to load snapshot index {self.path}: {exc}") from exc

        self._snapshots = {snapshot.id: snapshot for snapshot in snapshots}
        self._dependencies = dependencies
        self._next_dependency_id = next_dependency_id

    def _refresh(self) -> None:
        self._load()

    def _exclusive(self) -> ContextManager[None]:
        return _file_lock(self.lock_path)

    def _document(self) -> dict[str, Any]:
        return {
            "snapshots": [snapshot.to_dict() for snapshot in self._snapshots.values()],
            "dependencies": {
                snapshot_id: [dep.to_dict() for dep in rows]
                for snapshot_id, rows in self._dependencies.items()
            },
            "nextDependencyId": self._next_dependency_id,
        }

    def _commit(self) -> None:
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._document(), handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
            raise RepositoryError(f"Failed to write snapshot index {self.path}: {exc}") from exc
