import os
from dataclasses import dataclass, field
from typing import List

# Similarity selection
AMOUNT_SIMILARITY_TOLERANCE = 0.20
SIMILAR_BY_AMOUNT_LIMIT = 10
SIMILAR_BY_CATEGORY_LIMIT = 10
EMPLOYEE_HISTORY_LIMIT = 5
RELATED_CLAIMS_LIMIT = 5

# Insight rules
AMOUNT_DEVIATION_PCT = 50
LOW_CATEGORY_APPROVAL_PCT = 70
HIGH_EMPLOYEE_APPROVAL_PCT = 90
LOW_EMPLOYEE_APPROVAL_PCT = 60
REPEATED_CATEGORY_WINDOW = 3
REPEATED_CATEGORY_MIN_MATCHES = 2

# Department rollup
TOP_CATEGORY_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 10
BUDGET_ESTIMATE_FACTOR = 1.2
DEFAULT_TREND_MONTHS = 6

# Optional analytics cache
ANALYTICS_CACHE_TTL_SECONDS = 300.0
ANALYTICS_CACHE_MAX_ENTRIES = 1024


@dataclass(frozen=True)
class InsightThresholds:
    amount_tolerance: float = AMOUNT_SIMILARITY_TOLERANCE
    by_amount_limit: int = SIMILAR_BY_AMOUNT_LIMIT
    by_category_limit: int = SIMILAR_BY_CATEGORY_LIMIT
    employee_history_limit: int = EMPLOYEE_HISTORY_LIMIT
    amount_deviation_pct: float = AMOUNT_DEVIATION_PCT
    low_category_approval_pct: float = LOW_CATEGORY_APPROVAL_PCT
    high_employee_approval_pct: float = HIGH_EMPLOYEE_APPROVAL_PCT
    low_employee_approval_pct: float = LOW_EMPLOYEE_APPROVAL_PCT
    repeated_category_window: int = REPEATED_CATEGORY_WINDOW
    repeated_category_min_matches: int = REPEATED_CATEGORY_MIN_MATCHES


DEFAULT_THRESHOLDS = InsightThresholds()


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    database_url: str = "sqlite:///./expense_insights.db"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"
    sql_echo: bool = False
    analytics_cache: bool = False
    analytics_cache_ttl: float = ANALYTICS_CACHE_TTL_SECONDS
    analytics_cache_max_entries: int = ANALYTICS_CACHE_MAX_ENTRIES

    @classmethod
    def from_env(cls, prefix: str = "EXPENSE_") -> "Settings":
        """Build settings from environment variables.

        Environment variables:
            {prefix}DATABASE_URL: SQLAlchemy database URL
            {prefix}CORS_ORIGINS: comma separated list of allowed origins
            {prefix}LOG_LEVEL: logging level name
            {prefix}SQL_ECHO: echo SQL statements (true/false)
            {prefix}ANALYTICS_CACHE: cache analytics results (true/false); only
                useful when the claim store publishes changes to /api/changes
            {prefix}ANALYTICS_CACHE_TTL: seconds a cached result stays valid
            {prefix}ANALYTICS_CACHE_MAX_ENTRIES: cached results kept at most
        """
        kwargs = {}

        database_url = os.getenv(f"{prefix}DATABASE_URL")
        if database_url:
            kwargs["database_url"] = database_url

        cors_origins = os.getenv(f"{prefix}CORS_ORIGINS")
        if cors_origins:
            kwargs["cors_origins"] = [o.strip() for o in cors_origins.split(",") if o.strip()]

        log_level = os.getenv(f"{prefix}LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        sql_echo = os.getenv(f"{prefix}SQL_ECHO")
        if sql_echo:
            kwargs["sql_echo"] = _env_bool(sql_echo)

        analytics_cache = os.getenv(f"{prefix}ANALYTICS_CACHE")
        if analytics_cache:
            kwargs["analytics_cache"] = _env_bool(analytics_cache)

        cache_ttl = os.getenv(f"{prefix}ANALYTICS_CACHE_TTL")
        if cache_ttl:
            kwargs["analytics_cache_ttl"] = float(cache_ttl)

        cache_max = os.getenv(f"{prefix}ANALYTICS_CACHE_MAX_ENTRIES")
        if cache_max:
            kwargs["analytics_cache_max_entries"] = int(cache_max)

        return cls(**kwargs)
