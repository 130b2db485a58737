"""Settings loader for snapshot capture.

Reads settings from a JSON file (default: ``npm-snapshot.json`` in the current
directory) and validates it against the bundled ``settings.schema.json``.
Every key is optional; omitted keys fall back to the defaults below.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

DEFAULT_CONFIG_PATH = Path("npm-snapshot.json")
CONFIG_PATH_ENV_VAR = "NPM_SNAPSHOT_CONFIG"
SCHEMA_PATH = Path(__file__).resolve().parent / "settings.schema.json"

DEFAULT_STORAGE_ROOT = "~/.npm-snapshot/snapshots"
DEFAULT_MAX_WORKERS = 8

POPULAR_PACKAGES: tuple[str, ...] = (
    "lodash",
    "express",
    "react",
    "vue",
    "angular",
    "axios",
    "moment",
    "webpack",
    "babel",
    "eslint",
    "prettier",
    "typescript",
    "jest",
    "mocha",
    "chai",
    "underscore",
    "jquery",
    "bootstrap",
    "next",
    "gatsby",
    "nuxt",
    "electron",
    "socket.io",
    "mongoose",
    "sequelize",
)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be loaded or is invalid."""


@dataclass(slots=True, frozen=True)
class Settings:
    """Top-level settings container."""

    storage_root: Path = field(default_factory=lambda: Path(DEFAULT_STORAGE_ROOT).expanduser())
    max_workers: int = DEFAULT_MAX_WORKERS
    popular_packages: tuple[str, ...] = POPULAR_PACKAGES
    resolve_postinstall_scripts: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> Settings:
        """Build settings from a validated document.

        A relative ``storageRoot`` is resolved against ``base_dir`` (the
        directory of the settings file).
        """
        storage_root = Path(data.get("storageRoot", DEFAULT_STORAGE_ROOT)).expanduser()
        if not storage_root.is_absolute() and base_dir is not None:
            storage_root = base_dir / storage_root
        return cls(
            storage_root=storage_root,
            max_workers=data.get("maxWorkers", DEFAULT_MAX_WORKERS),
            popular_packages=tuple(data.get("popularPackages", POPULAR_PACKAGES)),
            resolve_postinstall_scripts=data.get("resolvePostinstallScripts", False),
        )


def _load_schema() -> dict[str, Any]:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def _format_errors(errors) -> str:
    messages = []
    for error in errors:
        pointer = "/".join(str(p) for p in error.path)
        messages.append(f"- {pointer or '<root>'}: {error.message}")
    return "\n".join(messages)


def validate_document(document: Any) -> None:
    """Validate a settings document, raising ConfigError listing all problems."""
    validator = Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path])
    if errors:
        raise ConfigError("Invalid settings:\n" + _format_errors(errors))


def _resolve_config_path(path: Path | str | None = None) -> tuple[Path, bool]:
    """Resolve the configuration file path.

    Priority:
    1. Explicit path argument
    2. NPM_SNAPSHOT_CONFIG environment variable
    3. Default path (npm-snapshot.json in the working directory)

    The flag is True when the path was requested explicitly and therefore
    must exist.
    """
    if path is not None:
        return Path(path), True

    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path), True

    return DEFAULT_CONFIG_PATH, False


def load_settings(path: Path | str | None = None) -> Settings:
    """Load and validate settings from a JSON file.

    Raises:
        ConfigError: If a requested file is missing, unreadable or invalid.
    """
    config_path, required = _resolve_config_path(path)

    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_path}")
        return Settings()

    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration file: {exc}") from exc

    validate_document(data)
    return Settings.from_dict(data, base_dir=config_path.resolve().parent)
