"""Parse npm package-lock.json into snapshot dependencies."""

from __future__ import annotations

import json
from typing import Any

from ..errors import LockfileParseError
from ..models import LockfileType, SnapshotDependency

_NODE_MODULES_PREFIX = "node_modules/"
_NESTED_SEGMENT = "/node_modules/"


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _version(meta: dict[str, Any]) -> str:
    version = meta.get("version")
    if isinstance(version, str) and version:
        return version
    return "unknown"


def _from_packages(packages: dict[str, Any], snapshot_id: str) -> list[SnapshotDependency]:
    dependencies: list[SnapshotDependency] = []
    for key, meta in packages.items():
        # "" is the root project itself
        if not key or not isinstance(meta, dict):
            continue
        name = key[len(_NODE_MODULES_PREFIX):] if key.startswith(_NODE_MODULES_PREFIX) else key
        if not name:
            continue
        dependencies.append(
            SnapshotDependency(
                snapshot_id=snapshot_id,
                name=name,
                version=_version(meta),
                is_direct=_NESTED_SEGMENT not in key,
                is_dev=meta.get("dev") is True,
                has_postinstall=meta.get("hasInstallScript") is True,
                integrity_hash=_string_or_none(meta.get("integrity")),
                resolved_url=_string_or_none(meta.get("resolved")),
            )
        )
    return dependencies


def _from_dependency_tree(
    tree: dict[str, Any], snapshot_id: str, *, top_level: bool = True
) -> list[SnapshotDependency]:
    """Walk the lockfileVersion 1 nested ``dependencies`` tree."""
    dependencies: list[SnapshotDependency] = []
    for name, meta in tree.items():
        if not name or not isinstance(meta, dict):
            continue
        dependencies.append(
            SnapshotDependency(
                snapshot_id=snapshot_id,
                name=name,
                version=_version(meta),
                is_direct=top_level,
                is_dev=meta.get("dev") is True,
                integrity_hash=_string_or_none(meta.get("integrity")),
                resolved_url=_string_or_none(meta.get("resolved")),
            )
        )
        nested = meta.get("dependencies")
        if isinstance(nested, dict):
            dependencies.extend(_from_dependency_tree(nested, snapshot_id, top_level=False))
    return dependencies


def parse(content: bytes, snapshot_id: str) -> list[SnapshotDependency]:
    """Return dependencies recorded in a package-lock.json document.

    The v2/v3 ``packages`` map is authoritative. Lockfiles written by npm 6
    only carry the nested ``dependencies`` tree, which is used as a fallback.
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise LockfileParseError(
            f"Failed to parse package-lock.json: {exc}", LockfileType.NPM.value
        ) from exc

    if not isinstance(data, dict):
        raise LockfileParseError(
            "Failed to parse package-lock.json: top-level value must be an object",
            LockfileType.NPM.value,
        )

    packages = data.get("packages")
    if isinstance(packages, dict):
        return _from_packages(packages, snapshot_id)

    tree = data.get("dependencies")
    if isinstance(tree, dict):
        return _from_dependency_tree(tree, snapshot_id)

    return []
