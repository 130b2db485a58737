from __future__ import annotations

import json
from pathlib import Path

import pytest

from npm_snapshot.config import Settings
from npm_snapshot.core import SnapshotCaptureService
from npm_snapshot.repository import InMemorySnapshotRepository
from npm_snapshot.storage import SnapshotStorage


def write_package_lock(project: Path, packages: dict) -> Path:
    path = project / "package-lock.json"
    document = {"name": "demo", "version": "1.0.0", "lockfileVersion": 3, "packages": packages}
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def write_manifest(directory: Path, data: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def storage(tmp_path: Path) -> SnapshotStorage:
    return SnapshotStorage(tmp_path / "store")


@pytest.fixture
def repository() -> InMemorySnapshotRepository:
    return InMemorySnapshotRepository()


@pytest.fixture
def service(storage: SnapshotStorage, repository: InMemorySnapshotRepository) -> SnapshotCaptureService:
    return SnapshotCaptureService(storage, repository, Settings(storage_root=storage.base_path, max_workers=4))
