"""
Configuration loader for commit_gatekeeper.

Settings are resolved once per run into an immutable :class:`RunConfig`.
Built-in defaults are overridden by an optional JSON file named
``.gatekeeper.json`` in the repository root, which is in turn overridden
by command-line options. The resulting snapshot is passed explicitly to
every component; nothing reads settings from global state.

If the configuration file is malformed, contains unknown keys or values
of the wrong type, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings in environments
# where the root logger is not configured. The CLI configures logging
# explicitly, after which messages are emitted normally.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = ".gatekeeper.json"


class ConfigError(Exception):
    """Raised when the gatekeeper configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class RunConfig:
    """Immutable settings snapshot for a single gatekeeper run."""

    lint_command: str = "npm run lint"
    build_command: str = "npm run build"
    lint_fix_command: str = "npm run lint -- --fix"
    lint_max_attempts: int = 3
    build_max_attempts: int = 3
    heal_enabled: bool = True
    autofix_once: bool = False
    skip_build: bool = False
    allow_protected_branch: bool = False
    non_interactive: bool = False
    detailed_digest: bool = True
    auto_summary: bool = True
    protected_branches: Tuple[str, ...] = ("main", "master")
    heal_hook_env: str = "GATEKEEPER_HEAL_HOOK"
    summary: Optional[str] = None


_EXPECTED_TYPES: Dict[str, Any] = {
    "lint_command": str,
    "build_command": str,
    "lint_fix_command": str,
    "lint_max_attempts": int,
    "build_max_attempts": int,
    "heal_enabled": bool,
    "autofix_once": bool,
    "skip_build": bool,
    "allow_protected_branch": bool,
    "non_interactive": bool,
    "detailed_digest": bool,
    "auto_summary": bool,
    "protected_branches": list,
    "heal_hook_env": str,
    "summary": str,
}


def _validate(data: Mapping[str, Any], source: str) -> Dict[str, Any]:
    """Check key names and value types, returning a normalized copy."""
    known = {f.name for f in fields(RunConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys in {source}: {', '.join(unknown)}")

    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        expected = _EXPECTED_TYPES[key]
        # bool is a subclass of int; reject it where a count is expected.
        if expected is int and isinstance(value, bool):
            raise ConfigError(f"'{key}' must be an integer")
        if expected is list:
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{key}' must be a list of strings")
            value = tuple(value)
        elif not isinstance(value, expected):
            raise ConfigError(f"'{key}' must be of type {expected.__name__}")
        normalized[key] = value

    for key in ("lint_max_attempts", "build_max_attempts"):
        if key in normalized and normalized[key] < 1:
            raise ConfigError(f"'{key}' must be at least 1")
    for key in ("lint_command", "build_command"):
        if key in normalized and not normalized[key].strip():
            raise ConfigError(f"'{key}' must not be empty")
    return normalized


def load_config_file(repo_root: Path) -> Dict[str, Any]:
    """Read ``.gatekeeper.json`` from ``repo_root``.

    A missing file is not an error; an empty dictionary is returned.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object, or
            contains invalid settings.
    """
    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists():
        logger.debug("No configuration file at %s, using defaults", config_path)
        return {}

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")

    settings = _validate(data, config_path.name)
    logger.debug("Loaded configuration from %s: %s", config_path, settings)
    return settings


def load_config(repo_root: Path, overrides: Optional[Mapping[str, Any]] = None) -> RunConfig:
    """Resolve the run configuration for ``repo_root``.

    Args:
        repo_root: Repository root holding the optional configuration file.
        overrides: Command-line values; entries set to None are ignored.

    Returns:
        The frozen :class:`RunConfig` for this run.

    Raises:
        ConfigError: If the file or the overrides are invalid.
    """
    settings = load_config_file(repo_root)
    if overrides:
        settings.update(_validate(overrides, "command-line options"))
    return replace(RunConfig(), **settings)
