"""Heuristic supply-chain checks over a captured dependency list.

Implements:
- A 0-100 security score from install-script and integrity coverage
- Inventory of install-time lifecycle scripts found in node_modules
- Typosquatting detection against a curated list of popular package names

node_modules content is untrusted input: packages whose manifest cannot be
read or parsed are skipped rather than failing the scan.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TypeVar

from .config import DEFAULT_MAX_WORKERS, POPULAR_PACKAGES
from .hashing import compute_hash
from .models import (
    PostinstallEntry,
    SecurityContext,
    SnapshotDependency,
    TyposquattingAlert,
)
from .parsers import package_json

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_POSTINSTALL_PENALTY = 30
POSTINSTALL_PENALTY_EACH = 2
MAX_INTEGRITY_PENALTY = 20

MAX_TYPO_DISTANCE = 2
MIN_TYPO_CONFIDENCE = 0.7


def compute_security_score(dependencies: Sequence[SnapshotDependency]) -> int:
    """Score a dependency list from 0 (worst) to 100 (best).

    Each dependency with an install script costs 2 points (capped at 30) and
    the share of dependencies without an integrity hash costs up to 20.
    """
    total = len(dependencies)
    if total == 0:
        return 100

    postinstall_count = sum(1 for dep in dependencies if dep.has_postinstall)
    without_integrity = sum(1 for dep in dependencies if not dep.integrity_hash)

    postinstall_penalty = min(MAX_POSTINSTALL_PENALTY, postinstall_count * POSTINSTALL_PENALTY_EACH)
    integrity_penalty = min(MAX_INTEGRITY_PENALTY, without_integrity / total * MAX_INTEGRITY_PENALTY)

    score = int(100 - postinstall_penalty - integrity_penalty)
    return max(0, min(100, score))


def osa_distance(a: str, b: str) -> int:
    """Optimal string alignment distance: Levenshtein plus adjacent swaps at cost 1.

    Transposed letters ("lodahs") are the most common typosquat, so they
    count as a single edit.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev_prev: list[int] = []
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        curr = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            value = min(prev[j] + 1, curr[j - 1] + 1, prev[j - 1] + cost)
            if i > 1 and j > 1 and ca == b[j - 2] and a[i - 2] == cb:
                value = min(value, prev_prev[j - 2] + 1)
            curr.append(value)
        prev_prev, prev = prev, curr
    return prev[-1]


def find_package_manifests(node_modules: Path) -> list[Path]:
    """List package.json files one level under node_modules, two under @scopes."""
    results: list[Path] = []
    try:
        entries = sorted(node_modules.iterdir())
    except OSError as exc:
        logger.debug("Cannot list %s: %s", node_modules, exc)
        return results

    for entry in entries:
        if not entry.is_dir():
            continue
        manifest = entry / "package.json"
        if manifest.is_file():
            results.append(manifest)
        if entry.name.startswith("@"):
            try:
                scoped = sorted(entry.iterdir())
            except OSError as exc:
                logger.debug("Cannot list %s: %s", entry, exc)
                continue
            for scoped_entry in scoped:
                scoped_manifest = scoped_entry / "package.json"
                if scoped_manifest.is_file():
                    results.append(scoped_manifest)
    return results


def extract_postinstall_script(manifest_path: Path) -> PostinstallEntry | None:
    """Return the first install hook declared by a package manifest, if any."""
    try:
        manifest = package_json.load(manifest_path)
    except (OSError, ValueError) as exc:
        logger.debug("Skipping unreadable manifest %s: %s", manifest_path, exc)
        return None

    found = package_json.find_install_script(manifest)
    if found is None:
        return None
    name = manifest.get("name")
    if not isinstance(name, str) or not name:
        return None
    version = manifest.get("version")
    _, script = found
    return PostinstallEntry(
        package_name=name,
        version=version if isinstance(version, str) and version else "unknown",
        script=script,
        script_hash=compute_hash(script.encode("utf-8")),
    )


class SecurityAnalyzer:
    """Runs the security scans with a bounded worker pool."""

    def __init__(
        self,
        popular_packages: Iterable[str] = POPULAR_PACKAGES,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.popular_packages = tuple(popular_packages)
        self.max_workers = max_workers

    def _parallel_map(self, func: Callable[[T], R | None], items: Sequence[T]) -> list[R]:
        """Apply ``func`` to every item concurrently, dropping None results."""
        if not items:
            return []
        results: list[R] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as executor:
            futures = [executor.submit(func, item) for item in items]
            for future in as_completed(futures):
                result = future.result()
                if result is not None:
                    results.append(result)
        return results

    def scan_postinstall_scripts(self, project_root: Path | str) -> list[PostinstallEntry]:
        """Inventory install-time lifecycle scripts under ``node_modules``."""
        node_modules = Path(project_root) / "node_modules"
        if not node_modules.is_dir():
            return []

        manifests = find_package_manifests(node_modules)
        entries = self._parallel_map(extract_postinstall_script, manifests)
        entries.sort(key=lambda e: (e.package_name, e.version))
        logger.debug(
            "Scanned %d packages in %s, %d with install scripts",
            len(manifests),
            node_modules,
            len(entries),
        )
        return entries

    def _check_name(self, name: str) -> TyposquattingAlert | None:
        for popular in self.popular_packages:
            if name == popular:
                continue
            distance = osa_distance(name, popular)
            if 0 < distance <= MAX_TYPO_DISTANCE:
                confidence = 1.0 - distance / max(len(name), len(popular))
                if confidence >= MIN_TYPO_CONFIDENCE:
                    return TyposquattingAlert(
                        package_name=name,
                        similar_to=popular,
                        distance=distance,
                        confidence=confidence,
                    )
        return None

    def check_typosquatting(
        self, dependencies: Sequence[SnapshotDependency]
    ) -> list[TyposquattingAlert]:
        """Flag dependencies whose name is within two edits of a popular package."""
        names = [dep.name for dep in dependencies]
        alerts = self._parallel_map(self._check_name, names)
        alerts.sort(key=lambda a: (a.package_name, a.similar_to))
        return alerts

    def build_security_context(
        self, project_root: Path | str, dependencies: Sequence[SnapshotDependency]
    ) -> SecurityContext:
        postinstall_scripts = self.scan_postinstall_scripts(project_root)
        typosquatting_suspects = self.check_typosquatting(dependencies)
        return SecurityContext(
            postinstall_scripts=tuple(postinstall_scripts),
            typosquatting_suspects=tuple(typosquatting_suspects),
            integrity_issues=(),
        )
