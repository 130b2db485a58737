"""Placeholder parser for Bun's binary lockfile."""

from __future__ import annotations

import logging

from ..models import SnapshotDependency

logger = logging.getLogger(__name__)


def parse(content: bytes, snapshot_id: str) -> list[SnapshotDependency]:
    """Return an empty list; bun.lockb decoding is not supported."""
    logger.warning(
        "Bun lockfile parsing not implemented, returning empty dependency list "
        "(snapshot %s, %d bytes)",
        snapshot_id,
        len(content),
    )
    return []
