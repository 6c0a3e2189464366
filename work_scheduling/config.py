import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
	search_horizon_days: int = int(os.getenv("WORK_SCHEDULING_SEARCH_HORIZON_DAYS", "180"))
	max_horizon_days: int = int(os.getenv("WORK_SCHEDULING_MAX_HORIZON_DAYS", "730"))
	fallback_timezone: str = os.getenv("WORK_SCHEDULING_FALLBACK_TIMEZONE", "UTC")


settings = Settings()
