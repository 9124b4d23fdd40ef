"""Load and merge configuration from .leakguard.toml and env vars."""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import-not-found]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

from leakguard.config.schema import (
    LOG_LEVELS,
    OUTPUT_FORMATS,
    REDACT_MODES,
    BaselineConfig,
    CIConfig,
    LeakGuardConfig,
    LogConfig,
    OutputConfig,
    RuleSetConfig,
    ScanConfig,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".leakguard.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _merge_env_overrides(cfg: LeakGuardConfig) -> None:
    """Apply LEAKGUARD_* environment variable overrides."""
    if val := os.environ.get("LEAKGUARD_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("LEAKGUARD_WORKERS"):
        try:
            workers = int(val)
        except ValueError:
            workers = 0
        if workers > 0:
            cfg.scan.workers = workers
    if val := os.environ.get("LEAKGUARD_DISABLE_RULES"):
        cfg.ruleset.disable.extend(r.strip() for r in val.split(",") if r.strip())
    if val := os.environ.get("LEAKGUARD_BASELINE"):
        cfg.baseline.path = val
    if val := os.environ.get("LEAKGUARD_LOG_LEVEL"):
        if val.lower() in LOG_LEVELS:
            cfg.log.level = val.lower()


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    unknown = set(raw) - valid_fields
    if unknown:
        logger.warning("Ignoring unknown keys in [%s]: %s", section, ", ".join(sorted(unknown)))
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def _table_list(data: Dict[str, Any], key: str) -> list:
    value = data.get(key, [])
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ConfigError(f"[[{key}]] must be an array of tables")
    return list(value)


def load_config(
    repo_root: Path,
    config_override: Optional[str] = None,
) -> LeakGuardConfig:
    """Load, validate, and return a LeakGuardConfig."""
    config_path = find_config_file(repo_root, config_override)

    if config_path is None:
        cfg = LeakGuardConfig()
    else:
        logger.debug("Loading config from %s", config_path)
        raw = _parse_toml(config_path)
        cfg = LeakGuardConfig(
            version=raw.get("version", "1.0"),
            scan=_build_section(raw, ScanConfig, "scan"),
            output=_build_section(raw, OutputConfig, "output"),
            ruleset=_build_section(raw, RuleSetConfig, "ruleset"),
            baseline=_build_section(raw, BaselineConfig, "baseline"),
            log=_build_section(raw, LogConfig, "log"),
            ci=_build_section(raw, CIConfig, "ci"),
            rules=_table_list(raw, "rules"),
            # [allowlist] (single table) and [[allowlists]] are both accepted
            allowlists=_table_list(raw, "allowlist") + _table_list(raw, "allowlists"),
        )

    _merge_env_overrides(cfg)
    _check(cfg)
    return cfg


def _check(cfg: LeakGuardConfig) -> None:
    if cfg.output.format not in OUTPUT_FORMATS:
        raise ConfigError(f"Invalid output format: {cfg.output.format!r}")
    if cfg.output.redact not in REDACT_MODES:
        raise ConfigError(f"Invalid redact mode: {cfg.output.redact!r}")
    if cfg.scan.workers < 1:
        raise ConfigError("[scan] workers must be at least 1")
    if cfg.scan.queue_size < 1:
        raise ConfigError("[scan] queue_size must be at least 1")
    if cfg.scan.max_line_length < 0:
        raise ConfigError("[scan] max_line_length must not be negative")
    if cfg.log.level.lower() not in LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {cfg.log.level!r}")
