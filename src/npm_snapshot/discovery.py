"""Lockfile and manifest discovery for a project directory."""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import FileReadError, NoLockfileFoundError
from .models import LOCKFILE_PRIORITY, LockfileType

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"


def locate(project_path: Path | str) -> tuple[LockfileType, Path]:
    """Return the lockfile type and path for ``project_path``.

    Candidates are checked in priority order (pnpm, npm, yarn, bun); the
    first one present wins.

    Raises:
        NoLockfileFoundError: If none of the known lockfiles exist.
    """
    root = Path(project_path)
    logger.info("Detecting lockfile in: %s", root)

    for lockfile_type in LOCKFILE_PRIORITY:
        candidate = root / lockfile_type.lockfile_name
        exists = candidate.is_file()
        logger.debug("Checking %s - exists: %s", candidate, exists)
        if exists:
            logger.info("Found %s lockfile: %s", lockfile_type.value, candidate)
            return lockfile_type, candidate

    logger.error("No lockfile found in: %s", root)
    raise NoLockfileFoundError(f"No lockfile found in project: {root}")


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FileReadError(f"Failed to read {path.name}: {exc}") from exc


def read_lockfile(project_path: Path | str) -> tuple[LockfileType, bytes]:
    """Locate the project's lockfile and return its type and raw bytes."""
    lockfile_type, path = locate(project_path)
    return lockfile_type, _read_bytes(path)


def read_package_json(project_path: Path | str) -> bytes | None:
    """Return raw ``package.json`` bytes, or None when the project has none."""
    path = Path(project_path) / PACKAGE_JSON
    if not path.is_file():
        return None
    return _read_bytes(path)
