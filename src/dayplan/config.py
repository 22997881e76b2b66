"""Configuration management for dayplan."""

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path

from .core.capacity import CapacityConfig
from .core.scoring import DEFAULT_PLANNER_CONFIG, ExceptionsConfig, PlannerConfig, clamp
from .core.windows import DEFAULT_TIMEZONE, WorkdayConfig

logger = logging.getLogger(__name__)

DAYPLAN_HOME = Path(os.environ.get("DAYPLAN_HOME", Path.home() / "dayplan"))
CONFIG_FILE = DAYPLAN_HOME / "config" / "dayplan.conf"
DATA_DIR = DAYPLAN_HOME / "data"

ENABLE_CRITICAL_KEY = "PLANNER_ENABLE_CRITICAL_EXCEPTION"
CRITICAL_THRESHOLD_KEY = "PLANNER_CRITICAL_EXCEPTION_THRESHOLD"

TRUE_VALUES = {"true", "1", "yes", "y", "on"}
FALSE_VALUES = {"false", "0", "no", "n", "off"}


def parse_bool(value: str | None, fallback: bool) -> bool:
    """Case-insensitive true/false words; anything else keeps the fallback."""
    if not value:
        return fallback
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return fallback


def parse_number(value: str | None, fallback: float) -> float:
    """Finite number, or the fallback."""
    if not value:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        return fallback
    return parsed if math.isfinite(parsed) else fallback


def planner_config_from_env(env: Mapping[str, str] | None = None) -> PlannerConfig:
    """Build PlannerConfig from environment-like key/value strings."""
    env = os.environ if env is None else env
    defaults = DEFAULT_PLANNER_CONFIG.exceptions
    return PlannerConfig(
        exceptions=ExceptionsConfig(
            include_critical=parse_bool(env.get(ENABLE_CRITICAL_KEY), defaults.include_critical),
            critical_threshold=clamp(
                parse_number(env.get(CRITICAL_THRESHOLD_KEY), defaults.critical_threshold), 0, 100
            ),
        )
    )


def parse_work_hours(value: str) -> tuple[time, time]:
    """Parse "HH:MM-HH:MM"."""
    start_str, end_str = value.split("-")
    return time.fromisoformat(start_str.strip()), time.fromisoformat(end_str.strip())


@dataclass
class Config:
    """dayplan configuration."""

    timezone: str = DEFAULT_TIMEZONE
    work_hours: str = "08:00-16:30"
    work_minutes: int = 510
    lunch_minutes: int = 30
    daily_overhead_minutes: int = 90
    max_buffer_minutes: int = 60
    buffer_per_task: int = 10
    planner_enable_critical_exception: str = ""
    planner_critical_exception_threshold: str = ""
    high_priority_stakeholders: list[str] = field(default_factory=list)
    snapshot_dir: str = ""

    def workday(self) -> WorkdayConfig:
        """Workday windows; malformed work hours fall back to the default."""
        try:
            start, end = parse_work_hours(self.work_hours)
            return WorkdayConfig(timezone=self.timezone, work_start=start, work_end=end)
        except ValueError as e:
            logger.warning(f"Invalid WORK_HOURS {self.work_hours!r}: {e}")
            return WorkdayConfig(timezone=self.timezone)

    def capacity(self) -> CapacityConfig:
        return CapacityConfig(
            work_minutes=self.work_minutes,
            lunch_minutes=self.lunch_minutes,
            daily_overhead_minutes=self.daily_overhead_minutes,
            max_buffer_minutes=self.max_buffer_minutes,
            buffer_per_task=self.buffer_per_task,
        )

    def planner(self) -> PlannerConfig:
        return planner_config_from_env(
            {
                ENABLE_CRITICAL_KEY: self.planner_enable_critical_exception,
                CRITICAL_THRESHOLD_KEY: self.planner_critical_exception_threshold,
            }
        )

    def snapshot_path(self) -> Path:
        if self.snapshot_dir:
            return Path(self.snapshot_dir).expanduser()
        return DATA_DIR / "snapshots"


INT_KEYS = (
    "work_minutes",
    "lunch_minutes",
    "daily_overhead_minutes",
    "max_buffer_minutes",
    "buffer_per_task",
)


def _unquote(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> Config:
    """
    Load configuration from dayplan.conf, then apply PLANNER_* environment overrides.
    """
    path = path or CONFIG_FILE
    env = os.environ if env is None else env
    config = Config()

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "timezone" | "work_hours" | "snapshot_dir":
                    setattr(config, key, value)
                case "planner_enable_critical_exception" | "planner_critical_exception_threshold":
                    setattr(config, key, value)
                case "high_priority_stakeholders":
                    config.high_priority_stakeholders = [s.strip() for s in value.split(",") if s.strip()]
                case _ if key in INT_KEYS:
                    try:
                        setattr(config, key, int(value))
                    except ValueError:
                        logger.warning(f"Ignoring non-integer {key.upper()}={value!r}")

    if env.get(ENABLE_CRITICAL_KEY):
        config.planner_enable_critical_exception = env[ENABLE_CRITICAL_KEY]
    if env.get(CRITICAL_THRESHOLD_KEY):
        config.planner_critical_exception_threshold = env[CRITICAL_THRESHOLD_KEY]

    return config
