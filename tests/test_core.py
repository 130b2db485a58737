import json

import pytest

from conftest import write_manifest, write_package_lock
from npm_snapshot.config import Settings
from npm_snapshot.core import SnapshotCaptureService
from npm_snapshot.errors import (
    LockfileParseError,
    NoLockfileFoundError,
    RepositoryError,
    StorageWriteError,
)
from npm_snapshot.hashing import compute_hash
from npm_snapshot.models import LockfileType, SnapshotStatus, TriggerSource
from npm_snapshot.repository import InMemorySnapshotRepository
from npm_snapshot.storage import SnapshotStorage

YARN_LOCK = b"""\
# yarn lockfile v1


chalk@^4.1.0:
  version "4.1.2"
  integrity sha512-chalk

debug@^4.3.4:
  version "4.3.4"
  integrity sha512-debug

"""


def test_npm_capture_with_install_script(service, repository, project):
    write_package_lock(
        project,
        {
            "": {"name": "demo", "version": "1.0.0"},
            "node_modules/foo": {
                "version": "1.0.0",
                "hasInstallScript": True,
                "integrity": "sha512-foo",
            },
        },
    )

    snapshot = service.capture_snapshot(project, TriggerSource.MANUAL)

    assert snapshot.status is SnapshotStatus.COMPLETED
    assert snapshot.lockfile_type is LockfileType.NPM
    assert snapshot.total_dependencies == 1
    assert snapshot.direct_dependencies == 1
    assert snapshot.postinstall_count == 1
    assert snapshot.security_score == 98
    assert snapshot.error_message is None
    assert len(repository.get_dependencies(snapshot.id)) == snapshot.total_dependencies
    assert repository.get_snapshot(snapshot.id).status is SnapshotStatus.COMPLETED


def test_missing_lockfile_records_failed_snapshot(service, repository, project):
    with pytest.raises(NoLockfileFoundError):
        service.capture_snapshot(project, TriggerSource.MANUAL)

    (failed,) = repository.list_snapshots()
    assert failed.status is SnapshotStatus.FAILED
    assert "No lockfile found" in failed.error_message
    assert failed.lockfile_type is None
    assert repository.get_dependencies(failed.id) == []


def test_yarn_capture_emits_one_row_per_stanza(service, repository, project):
    (project / "yarn.lock").write_bytes(YARN_LOCK)

    snapshot = service.capture_snapshot(project)

    deps = repository.get_dependencies(snapshot.id)
    assert snapshot.lockfile_type is LockfileType.YARN
    assert [(dep.name, dep.integrity_hash) for dep in deps] == [
        ("chalk", "sha512-chalk"),
        ("debug", "sha512-debug"),
    ]
    assert snapshot.direct_dependencies == 0


def test_pnpm_preferred_when_both_lockfiles_exist(service, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})
    (project / "pnpm-lock.yaml").write_text(
        "lockfileVersion: '6.0'\npackages:\n  /b@2.0.0:\n    resolution: {integrity: sha512-b}\n",
        encoding="utf-8",
    )

    snapshot = service.capture_snapshot(project)

    assert snapshot.lockfile_type is LockfileType.PNPM
    assert snapshot.total_dependencies == 1


def test_hashes_and_artifacts_are_recorded(service, storage, project):
    lock_path = write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})
    manifest = write_manifest(project, {"name": "demo", "dependencies": {"a": "^1.0.0"}})

    snapshot = service.capture_snapshot(project)

    assert snapshot.lockfile_hash == compute_hash(lock_path.read_bytes())
    assert snapshot.package_json_hash == compute_hash(manifest.read_bytes())
    assert snapshot.dependency_tree_hash == compute_hash(b"a@1.0.0")
    assert snapshot.storage_path == str(storage.get_snapshot_path(snapshot.id))
    assert snapshot.compressed_size > 0
    assert storage.load_lockfile(snapshot.id, "package-lock.json") == lock_path.read_bytes()
    assert storage.load_package_json(snapshot.id) == manifest.read_bytes()


def test_missing_package_json_is_not_a_failure(service, storage, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})

    snapshot = service.capture_snapshot(project)

    assert snapshot.status is SnapshotStatus.COMPLETED
    assert snapshot.package_json_hash is None
    assert storage.load_package_json(snapshot.id) is None


def test_parse_error_marks_failed_without_dependency_rows(service, repository, project):
    (project / "package-lock.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(LockfileParseError):
        service.capture_snapshot(project)

    (failed,) = repository.list_snapshots()
    assert failed.status is SnapshotStatus.FAILED
    assert "Failed to parse package-lock.json" in failed.error_message
    assert failed.lockfile_type is LockfileType.NPM
    assert repository.get_dependencies(failed.id) == []


def test_storage_error_marks_failed(repository, project, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not directory", encoding="utf-8")
    service = SnapshotCaptureService(SnapshotStorage(blocker), repository)
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})

    with pytest.raises(StorageWriteError):
        service.capture_snapshot(project)

    (failed,) = repository.list_snapshots()
    assert failed.status is SnapshotStatus.FAILED


def test_bun_capture_completes_with_no_dependencies(service, project):
    (project / "bun.lockb").write_bytes(b"\x00bun-binary")

    snapshot = service.capture_snapshot(project)

    assert snapshot.status is SnapshotStatus.COMPLETED
    assert snapshot.lockfile_type is LockfileType.BUN
    assert snapshot.total_dependencies == 0
    assert snapshot.security_score == 100


def test_each_capture_creates_new_history_entry(service, repository, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})

    first = service.capture_manual_snapshot(project)
    second = service.capture_lockfile_change_snapshot(project)

    assert first.id != second.id
    assert first.trigger_source is TriggerSource.MANUAL
    assert second.trigger_source is TriggerSource.LOCKFILE_CHANGE
    assert first.dependency_tree_hash == second.dependency_tree_hash
    assert len(repository.list_snapshots()) == 2
    assert repository.get_snapshot(first.id).status is SnapshotStatus.COMPLETED


def test_snapshot_is_visible_as_capturing_while_in_progress(repository, storage, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})
    seen = []

    class SpyRepository(InMemorySnapshotRepository):
        def update_snapshot(self, snapshot):
            seen.append(self.get_snapshot(snapshot.id).status)
            super().update_snapshot(snapshot)

    service = SnapshotCaptureService(storage, SpyRepository())
    service.capture_snapshot(project)

    assert seen == [SnapshotStatus.CAPTURING]


def test_failure_to_create_initial_record_propagates(storage, project):
    class RejectingRepository(InMemorySnapshotRepository):
        def create_snapshot(self, snapshot):
            raise RepositoryError("store offline")

    service = SnapshotCaptureService(storage, RejectingRepository())

    with pytest.raises(RepositoryError, match="store offline"):
        service.capture_snapshot(project)


def test_trigger_source_accepts_string(service, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})

    snapshot = service.capture_snapshot(project, "lockfile_change")

    assert snapshot.trigger_source is TriggerSource.LOCKFILE_CHANGE


def test_postinstall_scripts_resolved_when_enabled(storage, repository, project):
    write_package_lock(
        project,
        {"node_modules/esbuild": {"version": "0.19.12", "hasInstallScript": True, "integrity": "h"}},
    )
    write_manifest(
        project / "node_modules" / "esbuild",
        {"name": "esbuild", "version": "0.19.12", "scripts": {"postinstall": "node install.js"}},
    )
    settings = Settings(storage_root=storage.base_path, resolve_postinstall_scripts=True)
    service = SnapshotCaptureService(storage, repository, settings)

    snapshot = service.capture_snapshot(project)

    (dep,) = repository.get_dependencies(snapshot.id)
    assert dep.postinstall_script == "node install.js"
    assert snapshot.security_score == 98


def test_postinstall_scripts_not_resolved_by_default(service, repository, project):
    write_package_lock(project, {"node_modules/esbuild": {"version": "1.0.0", "hasInstallScript": True}})
    write_manifest(
        project / "node_modules" / "esbuild",
        {"name": "esbuild", "version": "1.0.0", "scripts": {"postinstall": "node install.js"}},
    )

    snapshot = service.capture_snapshot(project)

    (dep,) = repository.get_dependencies(snapshot.id)
    assert dep.postinstall_script is None


def test_build_security_context_for_stored_snapshot(service, project):
    write_package_lock(project, {"node_modules/lodahs": {"version": "1.0.0"}})
    write_manifest(
        project / "node_modules" / "lodahs",
        {"name": "lodahs", "version": "1.0.0", "scripts": {"preinstall": "node steal.js"}},
    )

    snapshot = service.capture_snapshot(project)
    context = service.build_security_context(snapshot.id)

    assert [entry.script for entry in context.postinstall_scripts] == ["node steal.js"]
    assert [alert.similar_to for alert in context.typosquatting_suspects] == ["lodash"]


def test_build_security_context_unknown_snapshot(service):
    with pytest.raises(RepositoryError):
        service.build_security_context("missing")


def test_from_settings_persists_history(tmp_path, project):
    write_package_lock(project, {"node_modules/a": {"version": "1.0.0"}})
    settings = Settings(storage_root=tmp_path / "root")

    snapshot = SnapshotCaptureService.from_settings(settings).capture_snapshot(project)

    index = json.loads((tmp_path / "root" / "snapshots.json").read_text(encoding="utf-8"))
    assert [item["id"] for item in index["snapshots"]] == [snapshot.id]
    reopened = SnapshotCaptureService.from_settings(settings)
    assert reopened.repository.get_snapshot(snapshot.id).status is SnapshotStatus.COMPLETED


def test_v1_lockfile_with_empty_name_still_completes(service, repository, project):
    (project / "package-lock.json").write_text(
        json.dumps({"lockfileVersion": 1, "dependencies": {"": {"version": "1.0.0"}, "ms": {"version": "2.1.3"}}}),
        encoding="utf-8",
    )

    snapshot = service.capture_snapshot(project)

    assert snapshot.status is SnapshotStatus.COMPLETED
    assert [dep.name for dep in repository.get_dependencies(snapshot.id)] == ["ms"]
