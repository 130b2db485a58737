"""Human-readable Markdown rendering of a snapshot report."""

from __future__ import annotations

from typing import Any


def _cell(value: Any) -> str:
    text = "n/a" if value is None or value == "" else str(value)
    return text.replace("|", "\\|").replace("\n", " ")


def render_summary(report: dict[str, Any]) -> str:
    """Return a Markdown string with headline metrics and security tables."""
    snapshot = report.get("snapshot", {})
    totals = report.get("totals", {})
    security = report.get("security")

    lines = []
    lines.append("# npm-snapshot Summary")
    lines.append("")
    lines.append(f"Project: {snapshot.get('projectPath', '(unknown project)')}")
    lines.append(
        f"Snapshot: {snapshot.get('id', 'n/a')} | Status: {snapshot.get('status', 'n/a')}"
        f" | Lockfile: {snapshot.get('lockfileType') or 'n/a'}"
    )
    if snapshot.get("errorMessage"):
        lines.append(f"Error: {snapshot['errorMessage']}")
    lines.append("")
    lines.append(
        f"Dependencies: {totals.get('dependencies', 0)} | Direct: {totals.get('direct', 0)}"
        f" | Dev: {totals.get('dev', 0)} | Install scripts: {totals.get('postinstall', 0)}"
    )
    score = snapshot.get("securityScore")
    lines.append(f"Security score: {score if score is not None else 'n/a'}/100")

    if security is None:
        return "\n".join(lines) + "\n"

    lines.append("")
    lines.append("## Install scripts")
    lines.append("")
    lines.append("| Package | Version | Script |")
    lines.append("| --- | --- | --- |")
    scripts = security.get("postinstallScripts") or []
    for entry in scripts:
        lines.append(
            f"| {_cell(entry.get('packageName'))} | {_cell(entry.get('version'))}"
            f" | `{_cell(entry.get('script'))}` |"
        )
    if not scripts:
        lines.append("| (none found) | n/a | n/a |")

    lines.append("")
    lines.append("## Typosquatting suspects")
    lines.append("")
    lines.append("| Package | Similar to | Distance | Confidence |")
    lines.append("| --- | --- | --- | --- |")
    suspects = security.get("typosquattingSuspects") or []
    for alert in suspects:
        confidence = alert.get("confidence")
        lines.append(
            f"| {_cell(alert.get('packageName'))} | {_cell(alert.get('similarTo'))}"
            f" | {_cell(alert.get('distance'))}"
            f" | {f'{confidence:.2f}' if isinstance(confidence, (int, float)) else 'n/a'} |"
        )
    if not suspects:
        lines.append("| (none found) | n/a | n/a | n/a |")

    return "\n".join(lines) + "\n"
