"""Parse pnpm-lock.yaml into snapshot dependencies.

pnpm does not record install scripts in the lockfile, so ``has_postinstall``
is approximated from the ``hasBin`` flag or a ``scripts`` key. Direct
dependencies live in the ``importers`` section, which is not read here, so
``is_direct`` is always False.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from ..errors import LockfileParseError
from ..models import LockfileType, SnapshotDependency

# "(react@18.2.0)" style peer suffixes appended by pnpm 7+
_PEER_SUFFIX = re.compile(r"\(.*\)$")


def split_package_key(key: str) -> tuple[str, str]:
    """Split ``/name@version`` or ``/@scope/name@version`` into its parts.

    Anything after the version separated by ``/`` is dropped. Keys without a
    usable ``@`` separator keep the whole key as the name and ``unknown`` as
    the version.
    """
    ref = key[1:] if key.startswith("/") else key
    ref = _PEER_SUFFIX.sub("", ref)
    at = ref.rfind("@")
    if at > 0:
        version = ref[at + 1:].split("/", 1)[0]
        return ref[:at], version or "unknown"
    return ref, "unknown"


def _integrity(meta: dict[str, Any]) -> str | None:
    resolution = meta.get("resolution")
    if isinstance(resolution, dict):
        integrity = resolution.get("integrity")
        if isinstance(integrity, str):
            return integrity
    return None


def parse(content: bytes, snapshot_id: str) -> list[SnapshotDependency]:
    """Return dependencies listed under the ``packages`` mapping."""
    text = content.decode("utf-8", errors="replace")
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise LockfileParseError(
            f"Failed to parse pnpm-lock.yaml: {exc}", LockfileType.PNPM.value
        ) from exc

    if not isinstance(data, dict):
        raise LockfileParseError(
            "Failed to parse pnpm-lock.yaml: top-level value must be a mapping",
            LockfileType.PNPM.value,
        )

    packages = data.get("packages") or {}
    if not isinstance(packages, dict):
        return []

    dependencies: list[SnapshotDependency] = []
    for key, meta in packages.items():
        if not isinstance(meta, dict):
            meta = {}
        name, version = split_package_key(str(key))
        if not name:
            continue
        dependencies.append(
            SnapshotDependency(
                snapshot_id=snapshot_id,
                name=name,
                version=version,
                is_direct=False,
                is_dev=meta.get("dev") is True,
                has_postinstall=meta.get("hasBin") is True or "scripts" in meta,
                integrity_hash=_integrity(meta),
            )
        )
    return dependencies
