import logging
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fetch_or_default(branch: str, fetch: Callable[[], T], default: T) -> T:
    """
    Run a secondary query. Any failure is logged as a warning and replaced by
    `default`; a None result is replaced too.
    """
    try:
        result = fetch()
    except Exception as e:
        logger.warning("Secondary query '%s' degraded to default: %s", branch, e)
        return default
    return default if result is None else result
