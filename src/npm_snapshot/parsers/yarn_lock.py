"""Parse yarn.lock (v1 text format) into snapshot dependencies."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import SnapshotDependency


def _unquote(value: str) -> str:
    return value.strip().strip('"')


def package_name_from_header(header: str) -> str | None:
    """Return the package name from a stanza header line.

    ``lodash@^4.17.0, lodash@^4.17.21:`` yields ``lodash`` and
    ``"@babel/core@^7.0.0":`` yields ``@babel/core``. Headers without a
    version separator yield None.
    """
    first = _unquote(header.rstrip(":").split(",", 1)[0])
    if first.startswith("@"):
        idx = first.find("@", 1)
    else:
        idx = first.find("@")
    if idx <= 0:
        return None
    return first[:idx]


def _field_value(line: str, field: str) -> str | None:
    for separator in (" ", ":"):
        prefix = field + separator
        if line.startswith(prefix):
            return _unquote(line[len(prefix):])
    return None


@dataclass(slots=True)
class _Stanza:
    name: str | None = None
    version: str | None = None
    integrity: str | None = None
    resolved: str | None = None
    indent: int | None = None

    def reset(self, name: str | None = None) -> None:
        self.name = name
        self.indent = None
        self.version = None
        self.integrity = None
        self.resolved = None


def parse(content: bytes, snapshot_id: str) -> list[SnapshotDependency]:
    """Return one dependency per complete stanza.

    A stanza is emitted when a blank line (or end of file) follows a header
    for which a version line was seen. Fields are read only at the indent of
    the first line after the header; deeper lines belong to nested blocks
    such as ``dependencies:``.
    """
    text = content.decode("utf-8", errors="replace")
    dependencies: list[SnapshotDependency] = []
    stanza = _Stanza()

    def flush() -> None:
        if stanza.name and stanza.version:
            dependencies.append(
                SnapshotDependency(
                    snapshot_id=snapshot_id,
                    name=stanza.name,
                    version=stanza.version,
                    integrity_hash=stanza.integrity,
                    resolved_url=stanza.resolved,
                )
            )
        stanza.reset()

    for raw in text.splitlines():
        line = raw.rstrip()
        if not line.strip():
            flush()
            continue
        if line.lstrip().startswith("#"):
            continue
        if not raw[0].isspace() and line.endswith(":"):
            stanza.reset(package_name_from_header(line))
            continue

        indent = len(line) - len(line.lstrip())
        if stanza.indent is None:
            stanza.indent = indent
        elif indent > stanza.indent:
            continue

        stripped = line.strip()
        version = _field_value(stripped, "version")
        if version is not None:
            stanza.version = version
            continue
        integrity = _field_value(stripped, "integrity")
        if integrity is not None:
            stanza.integrity = integrity
            continue
        resolved = _field_value(stripped, "resolved")
        if resolved is not None:
            stanza.resolved = resolved

    flush()
    return dependencies
