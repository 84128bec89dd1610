"""Configuration management for Cando."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CANDO_HOME = Path(os.environ.get("CANDO_HOME", Path.home() / "cando"))
CONFIG_FILE = CANDO_HOME / "config" / "cando.conf"
DATA_DIR = CANDO_HOME / "data"


@dataclass
class Config:
    """Cando configuration."""

    data_file: str = ""
    horizon_days: int = 7
    snap_minutes: int = 15
    default_task_duration: int = 60
    recommendation_limit: int = 20
    urgent_days: int = 3
    work_hours: str = ""
    include_read_only_busy: bool = False

    @property
    def data_path(self) -> Path:
        if self.data_file:
            return Path(self.data_file).expanduser()
        return DATA_DIR / "cando.json"

    def work_hours_range(self) -> tuple[int, int] | None:
        """Parse "09:00-17:00" into (9, 17). None when unset or malformed."""
        if not self.work_hours:
            return None
        try:
            start_str, end_str = self.work_hours.split("-")
            start = int(start_str.split(":")[0])
            end = int(end_str.split(":")[0])
        except ValueError:
            logger.warning(f"Ignoring malformed WORK_HOURS: {self.work_hours!r}")
            return None
        if not 0 <= start < end <= 24:
            logger.warning(f"Ignoring out-of-range WORK_HOURS: {self.work_hours!r}")
            return None
        return start, end


def _int(key: str, value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key.upper()}: {value!r}, using {default}")
        return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from cando.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value[:1] in ('"', "'"):
            end_quote = value.find(value[0], 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "data_file":
                config.data_file = value
            case "horizon_days":
                config.horizon_days = _int(key, value, config.horizon_days)
            case "snap_minutes":
                config.snap_minutes = _int(key, value, config.snap_minutes)
            case "default_task_duration":
                config.default_task_duration = _int(key, value, config.default_task_duration)
            case "recommendation_limit":
                config.recommendation_limit = _int(key, value, config.recommendation_limit)
            case "urgent_days":
                config.urgent_days = _int(key, value, config.urgent_days)
            case "work_hours":
                config.work_hours = value
            case "include_read_only_busy":
                config.include_read_only_busy = value.lower() in ("1", "true", "yes", "on")
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
