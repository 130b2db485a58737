"""Report assembly and schema-friendly output."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .models import ExecutionSnapshot, SecurityContext, SnapshotDependency

REPORT_VERSION = "1"


def build_report(
    snapshot: ExecutionSnapshot,
    dependencies: Sequence[SnapshotDependency],
    context: SecurityContext | None = None,
) -> dict[str, Any]:
    """Combine a snapshot, its dependency rows and optional scan results.

    ``hasFindings`` is True when the security scans reported anything; it is
    always False when no scan was run.
    """
    totals: dict[str, int] = {
        "dependencies": len(dependencies),
        "direct": sum(1 for dep in dependencies if dep.is_direct),
        "dev": sum(1 for dep in dependencies if dep.is_dev),
        "postinstall": sum(1 for dep in dependencies if dep.has_postinstall),
        "withoutIntegrity": sum(1 for dep in dependencies if not dep.integrity_hash),
    }
    if context is not None:
        totals["postinstallScripts"] = len(context.postinstall_scripts)
        totals["typosquattingSuspects"] = len(context.typosquatting_suspects)

    return {
        "version": REPORT_VERSION,
        "snapshot": snapshot.to_dict(),
        "dependencies": [dep.to_dict() for dep in dependencies],
        "security": context.to_dict() if context is not None else None,
        "totals": totals,
        "hasFindings": bool(context and context.has_findings),
    }
