import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
PACKAGE_LOGGER = "expense_insights"

_configured = False


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach one stream handler to the package logger. Safe to call repeatedly;
    later calls only adjust the level.
    """
    global _configured
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        _configured = True

    # Keep SQLAlchemy quiet unless echo is requested explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger


def reset_logging() -> None:
    global _configured
    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    _configured = False
