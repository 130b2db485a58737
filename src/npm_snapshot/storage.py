"""Compressed artifact storage keyed by snapshot id."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tempfile
import zlib
from pathlib import Path

from .errors import StorageWriteError

logger = logging.getLogger(__name__)

PACKAGE_JSON_NAME = "package.json"
_SUFFIX = ".gz"


def _validate_component(value: str, kind: str) -> str:
    if not value or value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise StorageWriteError(f"Invalid {kind}: {value!r}")
    return value


class SnapshotStorage:
    """Stores gzip-compressed lockfile and manifest copies per snapshot.

    Every snapshot owns ``<base_path>/<snapshot_id>/``. Artifacts are written
    to a temporary file in that directory and moved into place with
    ``os.replace``, so readers never observe a partial file.
    """

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path).expanduser()

    def get_snapshot_path(self, snapshot_id: str) -> Path:
        return self.base_path / _validate_component(snapshot_id, "snapshot id")

    def _artifact_path(self, snapshot_id: str, filename: str) -> Path:
        name = _validate_component(filename, "artifact name")
        return self.get_snapshot_path(snapshot_id) / f"{name}{_SUFFIX}"

    def _write_atomic(self, target: Path, payload: bytes) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=target.parent)
        except OSError as exc:
            raise StorageWriteError(f"Failed to prepare {target}: {exc}") from exc

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, target)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StorageWriteError(f"Failed to write {target}: {exc}") from exc

    def _store(self, snapshot_id: str, filename: str, content: bytes) -> tuple[Path, int]:
        target = self._artifact_path(snapshot_id, filename)
        # mtime=0 keeps identical input byte-identical on disk
        compressed = gzip.compress(content, mtime=0)
        self._write_atomic(target, compressed)
        logger.debug(
            "Stored %s for snapshot %s (%d -> %d bytes)",
            filename,
            snapshot_id,
            len(content),
            len(compressed),
        )
        return target, len(compressed)

    def store_lockfile(self, snapshot_id: str, filename: str, content: bytes) -> tuple[Path, int]:
        """Compress and store a lockfile; return its path and compressed size."""
        return self._store(snapshot_id, filename, content)

    def store_package_json(self, snapshot_id: str, content: bytes) -> tuple[Path, int]:
        """Compress and store the project's package.json."""
        return self._store(snapshot_id, PACKAGE_JSON_NAME, content)

    def _load(self, snapshot_id: str, filename: str) -> bytes | None:
        path = self._artifact_path(snapshot_id, filename)
        if not path.is_file():
            return None
        try:
            return gzip.decompress(path.read_bytes())
        except (OSError, EOFError, zlib.error) as exc:
            raise StorageWriteError(f"Failed to read {path}: {exc}") from exc

    def load_lockfile(self, snapshot_id: str, filename: str) -> bytes | None:
        """Return the original lockfile bytes, or None if not stored."""
        return self._load(snapshot_id, filename)

    def load_package_json(self, snapshot_id: str) -> bytes | None:
        return self._load(snapshot_id, PACKAGE_JSON_NAME)

    def delete_snapshot(self, snapshot_id: str) -> bool:
        """Remove every artifact of a snapshot. Returns False if none existed."""
        path = self.get_snapshot_path(snapshot_id)
        if not path.exists():
            return False
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise StorageWriteError(f"Failed to delete {path}: {exc}") from exc
        logger.info("Deleted stored artifacts for snapshot %s", snapshot_id)
        return True
