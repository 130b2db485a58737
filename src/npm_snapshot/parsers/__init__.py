"""Lockfile parser registry.

Each supported ``LockfileType`` maps to one parser module with a
``parse(content, snapshot_id)`` function, so format quirks stay isolated and
testable on their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable
from typing import TypeAlias

from ..errors import LockfileParseError
from ..models import LockfileType, SnapshotDependency
from . import bun_lock, package_lock, pnpm_lock, yarn_lock

ParseFunction: TypeAlias = Callable[[bytes, str], list[SnapshotDependency]]


@dataclass(slots=True, frozen=True)
class LockfileParser:
    """Binds a lockfile format to its parse function."""

    lockfile_type: LockfileType
    parse: ParseFunction


LOCKFILE_PARSERS: dict[LockfileType, LockfileParser] = {
    LockfileType.NPM: LockfileParser(LockfileType.NPM, package_lock.parse),
    LockfileType.PNPM: LockfileParser(LockfileType.PNPM, pnpm_lock.parse),
    LockfileType.YARN: LockfileParser(LockfileType.YARN, yarn_lock.parse),
    LockfileType.BUN: LockfileParser(LockfileType.BUN, bun_lock.parse),
}


def get_parser(lockfile_type: LockfileType) -> LockfileParser:
    """Return the registered parser for ``lockfile_type``."""
    return LOCKFILE_PARSERS[LockfileType(lockfile_type)]


def parse_lockfile(
    lockfile_type: LockfileType, content: bytes, snapshot_id: str
) -> list[SnapshotDependency]:
    """Parse raw lockfile bytes with the parser registered for its format.

    Raises:
        LockfileParseError: If the content is malformed for its format.
    """
    parser = get_parser(lockfile_type)
    try:
        return parser.parse(content, snapshot_id)
    except ValueError as exc:
        raise LockfileParseError(
            f"Failed to parse {parser.lockfile_type.lockfile_name}: {exc}",
            parser.lockfile_type.value,
        ) from exc


__all__ = [
    "LOCKFILE_PARSERS",
    "LockfileParser",
    "ParseFunction",
    "get_parser",
    "parse_lockfile",
]
