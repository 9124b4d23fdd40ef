"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

OutputFormat = Literal["terminal", "json", "sarif"]
RedactMode = Literal["none", "partial", "full"]

OUTPUT_FORMATS = ("terminal", "json", "sarif")
REDACT_MODES = ("none", "partial", "full")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass
class ScanConfig:
    workers: int = 4
    queue_size: int = 64  # bounded fragment queue; a full queue blocks the source
    max_line_length: int = 100_000  # 0 disables the cap
    max_file_size_kb: int = 1024  # directory scans only
    follow_symlinks: bool = False
    log_opts: str = ""  # passed through to `git log -p`
    inline_allow: bool = True


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    redact: RedactMode = "partial"
    show_summary: bool = True
    exit_code: int = 1  # exit status when findings are reported


@dataclass
class RuleSetConfig:
    use_default: bool = True
    enable: List[str] = field(default_factory=list)  # empty = all enabled
    disable: List[str] = field(default_factory=list)
    validate: bool = False  # check custom rules against their samples at load


@dataclass
class BaselineConfig:
    path: Optional[str] = None
    keep_known: bool = False


@dataclass
class LogConfig:
    level: str = "warning"


@dataclass
class CIConfig:
    annotation_format: Literal["github", "none"] = "none"
    full_redaction: bool = True


@dataclass
class LeakGuardConfig:
    version: str = "1.0"
    scan: ScanConfig = field(default_factory=ScanConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    ruleset: RuleSetConfig = field(default_factory=RuleSetConfig)
    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    log: LogConfig = field(default_factory=LogConfig)
    ci: CIConfig = field(default_factory=CIConfig)
    # raw [[rules]] / [[allowlists]] tables, built into a RuleSet later
    rules: List[Dict[str, Any]] = field(default_factory=list)
    allowlists: List[Dict[str, Any]] = field(default_factory=list)
