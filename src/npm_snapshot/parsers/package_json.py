"""Read package.json manifests and their install-time lifecycle scripts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

# Checked in this order; the first hook present wins.
INSTALL_HOOKS = ("postinstall", "install", "preinstall")


def load(path: Path) -> dict[str, Any]:
    """Return the parsed manifest at ``path``.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a JSON object.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def find_install_script(manifest: dict[str, Any]) -> tuple[str, str] | None:
    """Return ``(hook, command)`` for the first install hook defined, if any."""
    scripts = manifest.get("scripts")
    if not isinstance(scripts, dict):
        return None
    for hook in INSTALL_HOOKS:
        command = scripts.get(hook)
        if isinstance(command, str):
            return hook, command
    return None
