"""Snapshot capture entrypoints.

``SnapshotCaptureService`` turns a project directory into a persisted
``ExecutionSnapshot``: it locates and stores the lockfile, parses it, derives
hashes and counts, and scores the result. A snapshot is recorded as
``capturing`` before any work starts and is finished exactly once as
``completed`` or ``failed``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from .config import Settings
from .discovery import read_lockfile, read_package_json
from .errors import RepositoryError
from .hashing import compute_dependency_tree_hash, compute_hash
from .models import (
    ExecutionSnapshot,
    SecurityContext,
    SnapshotDependency,
    TriggerSource,
)
from .parsers import parse_lockfile
from .repository import JsonFileSnapshotRepository, SnapshotRepository
from .security import SecurityAnalyzer, compute_security_score
from .storage import SnapshotStorage

logger = logging.getLogger(__name__)


class SnapshotCaptureService:
    """Orchestrates lockfile capture, artifact storage and scoring."""

    def __init__(
        self,
        storage: SnapshotStorage,
        repository: SnapshotRepository,
        settings: Settings | None = None,
        analyzer: SecurityAnalyzer | None = None,
    ) -> None:
        self.storage = storage
        self.repository = repository
        self.settings = settings or Settings()
        self.analyzer = analyzer or SecurityAnalyzer(
            popular_packages=self.settings.popular_packages,
            max_workers=self.settings.max_workers,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> SnapshotCaptureService:
        """Build a service storing artifacts and history under ``storage_root``."""
        return cls(
            storage=SnapshotStorage(settings.storage_root),
            repository=JsonFileSnapshotRepository.in_directory(settings.storage_root),
            settings=settings,
        )

    def capture_snapshot(
        self,
        project_path: Path | str,
        trigger_source: TriggerSource | str = TriggerSource.MANUAL,
    ) -> ExecutionSnapshot:
        """Capture the current dependency state of ``project_path``.

        Returns the completed snapshot. On failure the snapshot is persisted
        as ``failed`` with the error message and the error is re-raised; no
        dependency rows are written.
        """
        snapshot = ExecutionSnapshot.start(
            str(Path(project_path).expanduser().resolve()),
            TriggerSource(trigger_source),
        )
        self.repository.create_snapshot(snapshot)
        logger.info(
            "Capturing snapshot %s for %s (%s)",
            snapshot.id,
            snapshot.project_path,
            snapshot.trigger_source.value,
        )

        try:
            dependencies = self._capture_snapshot_data(snapshot)
        except Exception as exc:
            snapshot.mark_failed(str(exc))
            logger.error("Snapshot %s failed: %s", snapshot.id, exc)
            self.repository.update_snapshot(snapshot)
            raise

        snapshot.mark_completed()
        self.repository.update_snapshot(snapshot)
        self.repository.add_dependencies(dependencies)
        logger.info(
            "Snapshot %s completed: %d dependencies, score %s",
            snapshot.id,
            snapshot.total_dependencies,
            snapshot.security_score,
        )
        return snapshot

    def capture_manual_snapshot(self, project_path: Path | str) -> ExecutionSnapshot:
        """Capture initiated explicitly by a user."""
        return self.capture_snapshot(project_path, TriggerSource.MANUAL)

    def capture_lockfile_change_snapshot(self, project_path: Path | str) -> ExecutionSnapshot:
        """Capture fired by a file watcher after the lockfile changed."""
        return self.capture_snapshot(project_path, TriggerSource.LOCKFILE_CHANGE)

    def _capture_snapshot_data(self, snapshot: ExecutionSnapshot) -> list[SnapshotDependency]:
        project_path = Path(snapshot.project_path)

        lockfile_type, lockfile_content = read_lockfile(project_path)
        snapshot.lockfile_type = lockfile_type
        snapshot.lockfile_hash = compute_hash(lockfile_content)

        _, compressed_size = self.storage.store_lockfile(
            snapshot.id, lockfile_type.lockfile_name, lockfile_content
        )
        snapshot.compressed_size = compressed_size
        snapshot.storage_path = str(self.storage.get_snapshot_path(snapshot.id))

        package_json_content = read_package_json(project_path)
        if package_json_content is not None:
            snapshot.package_json_hash = compute_hash(package_json_content)
            self.storage.store_package_json(snapshot.id, package_json_content)

        dependencies = parse_lockfile(lockfile_type, lockfile_content, snapshot.id)
        if self.settings.resolve_postinstall_scripts:
            dependencies = self._resolve_postinstall_scripts(project_path, dependencies)

        snapshot.total_dependencies = len(dependencies)
        snapshot.direct_dependencies = sum(1 for dep in dependencies if dep.is_direct)
        snapshot.dev_dependencies = sum(1 for dep in dependencies if dep.is_dev)
        snapshot.postinstall_count = sum(1 for dep in dependencies if dep.has_postinstall)
        snapshot.dependency_tree_hash = compute_dependency_tree_hash(dependencies)
        snapshot.security_score = compute_security_score(dependencies)
        return dependencies

    def _resolve_postinstall_scripts(
        self, project_path: Path, dependencies: list[SnapshotDependency]
    ) -> list[SnapshotDependency]:
        """Attach install script text found in node_modules to matching rows."""
        try:
            entries = self.analyzer.scan_postinstall_scripts(project_path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not resolve install scripts for %s: %s", project_path, exc)
            return dependencies

        scripts = {(entry.package_name, entry.version): entry.script for entry in entries}
        if not scripts:
            return dependencies
        return [
            replace(dep, postinstall_script=scripts.get((dep.name, dep.version), dep.postinstall_script))
            for dep in dependencies
        ]

    def build_security_context(self, snapshot_id: str) -> SecurityContext:
        """Run the node_modules and typosquatting scans for a stored snapshot."""
        snapshot = self.repository.get_snapshot(snapshot_id)
        if snapshot is None:
            raise RepositoryError(f"Snapshot {snapshot_id} not found")
        dependencies = self.repository.get_dependencies(snapshot_id)
        return self.analyzer.build_security_context(snapshot.project_path, dependencies)
