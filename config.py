import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEK_START_DAYS = {"sunday": 6, "monday": 0}


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        week_starts_on: str,
        instant_hour: int,
        uncategorized_label: str,
        uncategorized_color: str,
        log_level: str,
    ) -> None:
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {timezone}") from exc
        if week_starts_on not in WEEK_START_DAYS:
            raise ValueError(f"Unsupported week start: {week_starts_on}")
        if not 0 <= instant_hour <= 23:
            raise ValueError("Instant hour must be between 0 and 23")
        self.database_url = database_url
        self.timezone = timezone
        self.week_starts_on = week_starts_on
        self.instant_hour = instant_hour
        self.uncategorized_label = uncategorized_label
        self.uncategorized_color = uncategorized_color
        self.log_level = log_level

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def week_start_weekday(self) -> int:
        """Python weekday number (Monday=0) the calendar week starts on."""
        return WEEK_START_DAYS[self.week_starts_on]


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("LEDGER_TIMEZONE", "America/Sao_Paulo")
    week_starts_on = os.getenv("LEDGER_WEEK_STARTS_ON", "sunday").strip().lower()
    instant_hour = int(os.getenv("LEDGER_INSTANT_HOUR", "12"))
    uncategorized_label = os.getenv("LEDGER_UNCATEGORIZED_LABEL", "No category")
    uncategorized_color = os.getenv("LEDGER_UNCATEGORIZED_COLOR", "#9ca3af")
    log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        week_starts_on=week_starts_on,
        instant_hour=instant_hour,
        uncategorized_label=uncategorized_label,
        uncategorized_color=uncategorized_color,
        log_level=log_level,
    )
