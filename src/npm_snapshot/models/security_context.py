"""Request-scoped security analysis results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PostinstallEntry:
    """An install-time lifecycle script found in node_modules."""

    package_name: str
    version: str
    script: str
    script_hash: str

    def to_dict(self) -> dict[str, str]:
        return {
            "packageName": self.package_name,
            "version": self.version,
            "script": self.script,
            "scriptHash": self.script_hash,
        }


@dataclass(frozen=True)
class TyposquattingAlert:
    """A dependency name suspiciously close to a popular package name."""

    package_name: str
    similar_to: str
    distance: int
    confidence: float

    def __post_init__(self) -> None:
        if self.distance <= 0:
            raise ValueError("distance must be positive")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")

    def to_dict(self) -> dict[str, Any]:
        return {
            "packageName": self.package_name,
            "similarTo": self.similar_to,
            "distance": self.distance,
            "confidence": round(self.confidence, 4),
        }


@dataclass(frozen=True)
class IntegrityIssue:
    """Reserved for integrity verification findings."""

    package_name: str
    version: str
    issue_type: str
    expected_hash: str | None = None
    actual_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "packageName": self.package_name,
            "version": self.version,
            "expectedHash": self.expected_hash,
            "actualHash": self.actual_hash,
            "issueType": self.issue_type,
        }


@dataclass(frozen=True)
class SecurityContext:
    """Aggregated output of the postinstall and typosquatting scans."""

    postinstall_scripts: tuple[PostinstallEntry, ...] = field(default_factory=tuple)
    typosquatting_suspects: tuple[TyposquattingAlert, ...] = field(default_factory=tuple)
    integrity_issues: tuple[IntegrityIssue, ...] = field(default_factory=tuple)

    @property
    def has_findings(self) -> bool:
        return bool(self.postinstall_scripts or self.typosquatting_suspects or self.integrity_issues)

    def to_dict(self) -> dict[str, object]:
        return {
            "postinstallScripts": [entry.to_dict() for entry in self.postinstall_scripts],
            "typosquattingSuspects": [alert.to_dict() for alert in self.typosquatting_suspects],
            "integrityIssues": [issue.to_dict() for issue in self.integrity_issues],
        }
