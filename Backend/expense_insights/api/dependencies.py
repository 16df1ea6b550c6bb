import logging
from typing import Optional

from expense_insights.config import Settings
from expense_insights.db.accessor import RecordAccessor, SqlRecordAccessor
from expense_insights.db.database import get_session_factory
from expense_insights.services.notifications import ChangeFeed, InsightCache

logger = logging.getLogger(__name__)

change_feed = ChangeFeed()

# Off unless enabled: nothing else tells the service when claims change
insight_cache: Optional[InsightCache] = None


def configure_cache(settings: Settings) -> Optional[InsightCache]:
    global insight_cache

    if insight_cache is not None:
        insight_cache.close()
    insight_cache = None

    if settings.analytics_cache:
        insight_cache = InsightCache(
            change_feed,
            ttl=settings.analytics_cache_ttl,
            max_entries=settings.analytics_cache_max_entries,
        )
        logger.info("Analytics cache enabled (ttl=%ss, max %s entries)",
                    settings.analytics_cache_ttl, settings.analytics_cache_max_entries)
    return insight_cache


def get_accessor() -> RecordAccessor:
    return SqlRecordAccessor(get_session_factory())


def get_change_feed() -> ChangeFeed:
    return change_feed


def get_cache() -> Optional[InsightCache]:
    return insight_cache
