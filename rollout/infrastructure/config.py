"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all Rollout settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- The loaded config is handed to every task explicitly, never read from ambient state
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplicationConfig:
    """Where the application lives on each host."""
    name: str = "application"
    root_directory: str = "/home/www"
    keep_releases: int = 4


@dataclass(frozen=True)
class RepositoryConfig:
    """Source repository cloned into every release."""
    url: str = ""
    branch: str = "master"


@dataclass(frozen=True)
class FleetConfig:
    """Target hosts and how to reach them."""
    targets: tuple[str, ...] = ()
    user: str = "root"
    port: int = 22
    connect_timeout: int = 30
    key_filename: str = ""


@dataclass(frozen=True)
class DependenciesConfig:
    """Dependency manager run inside each new release."""
    binary: str = "composer"
    fallback: str = "composer.phar"
    arguments: str = "install"


@dataclass(frozen=True)
class TestsConfig:
    """Test runner used by the test gate."""
    binary: str = "phpunit"
    fallback: str = "vendor/bin/phpunit"
    arguments: str = "--stop-on-failure"
    passed_marker: str = "OK"
    empty_marker: str = "No tests executed"


@dataclass(frozen=True)
class PermissionsConfig:
    """Release subfolders made executable and handed to the web user."""
    folders: tuple[str, ...] = ()
    owner: str = "www-data:www-data"


@dataclass(frozen=True)
class HooksConfig:
    """Shell commands run before/after a task, keyed by task slug."""
    before: dict = field(default_factory=dict)
    after: dict = field(default_factory=dict)

    def commands(self, moment: str, slug: str) -> list[str]:
        hooks = self.before if moment == "before" else self.after
        commands = hooks.get(slug, [])
        if isinstance(commands, str):
            return [commands]
        return list(commands)


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class RolloutConfig:
    """Root configuration for the Rollout application."""
    application: ApplicationConfig = field(default_factory=ApplicationConfig)
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    fleet: FleetConfig = field(default_factory=FleetConfig)
    dependencies: DependenciesConfig = field(default_factory=DependenciesConfig)
    tests: TestsConfig = field(default_factory=TestsConfig)
    permissions: PermissionsConfig = field(default_factory=PermissionsConfig)
    hooks: HooksConfig = field(default_factory=HooksConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"


_TOP_LEVEL_KEYS = frozenset({"log_level"})


def _env_override(data: dict, prefix: str = "ROLLOUT") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern ROLLOUT_SECTION_KEY.
    For example: ROLLOUT_REPOSITORY_BRANCH=develop, ROLLOUT_FLEET_TARGETS=10.0.0.1,10.0.0.2
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        elif len(parts) == 1:
            data[parts[0]] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s must hold a JSON object", path)
        return {}
    return data


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return cls()
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    for f in dataclasses.fields(cls):
        if f.name not in filtered:
            continue
        val = filtered[f.name]

        # Comma-separated strings become tuples for tuple fields
        if f.type == "tuple[str, ...]":
            if isinstance(val, str):
                filtered[f.name] = tuple(v.strip() for v in val.split(",") if v.strip())
            elif isinstance(val, list):
                filtered[f.name] = tuple(val)
        elif isinstance(val, str):
            if f.type == "int":
                filtered[f.name] = int(val)
            elif f.type == "bool":
                filtered[f.name] = val.lower() in ("true", "1", "yes")

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "ROLLOUT",
) -> RolloutConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (ROLLOUT_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to rollout.json in CWD.
        env_prefix: Environment variable prefix. Defaults to ROLLOUT.
    """
    config_path = Path(path) if path else Path("rollout.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return RolloutConfig(
        application=_build_sub_config(ApplicationConfig, data.get("application", {})),
        repository=_build_sub_config(RepositoryConfig, data.get("repository", {})),
        fleet=_build_sub_config(FleetConfig, data.get("fleet", {})),
        dependencies=_build_sub_config(DependenciesConfig, data.get("dependencies", {})),
        tests=_build_sub_config(TestsConfig, data.get("tests", {})),
        permissions=_build_sub_config(PermissionsConfig, data.get("permissions", {})),
        hooks=_build_sub_config(HooksConfig, data.get("hooks", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        log_level=data.get("log_level", "WARNING"),
    )
