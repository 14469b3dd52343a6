# calsched/config.py
import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class EngineSettings(BaseModel):
    timezone: str = os.getenv("CALSCHED_TIMEZONE", "UTC")
    log_level: str = os.getenv("CALSCHED_LOG_LEVEL", "INFO")

    # hours 24h, inclusive bounds
    work_start_hour: int = int(os.getenv("CALSCHED_WORK_START_HOUR", "8"))
    work_end_hour: int = int(os.getenv("CALSCHED_WORK_END_HOUR", "18"))
    alt_start_hour: int = int(os.getenv("CALSCHED_ALT_START_HOUR", "9"))
    alt_end_hour: int = int(os.getenv("CALSCHED_ALT_END_HOUR", "17"))

    max_slots: int = int(os.getenv("CALSCHED_MAX_SLOTS", "20"))
    search_days: int = int(os.getenv("CALSCHED_SEARCH_DAYS", "14"))
    compact_search_days: int = int(os.getenv("CALSCHED_COMPACT_SEARCH_DAYS", "7"))
    spread_days: int = int(os.getenv("CALSCHED_SPREAD_DAYS", "7"))
    solver_time_limit: float = float(os.getenv("CALSCHED_SOLVER_TIME_LIMIT", "10"))

    # severity bands
    low_overlap_minutes: int = int(os.getenv("CALSCHED_LOW_OVERLAP_MINUTES", "15"))
    medium_ratio: float = float(os.getenv("CALSCHED_MEDIUM_RATIO", "0.5"))
    high_ratio: float = float(os.getenv("CALSCHED_HIGH_RATIO", "0.9"))


settings = EngineSettings()
