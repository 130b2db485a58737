"""Content hashing used for change detection."""

from __future__ import annotations

from collections.abc import Iterable
from hashlib import sha256

from .models import SnapshotDependency


def compute_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest of ``data``."""
    return sha256(data).hexdigest()


def compute_dependency_tree_hash(dependencies: Iterable[SnapshotDependency]) -> str:
    """Hash the sorted ``name@version`` set of a dependency list.

    Sorting makes the digest independent of lockfile entry order, so two
    captures with the same resolved packages always hash equal.
    """
    keys = sorted(dep.key for dep in dependencies)
    return compute_hash("\n".join(keys).encode("utf-8"))
