import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from expense_insights.db.models import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def init_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the module-level engine and session factory. Calling it again
    replaces both.
    """
    global _engine, _SessionFactory

    connect_args = {}
    if database_url.startswith("sqlite"):
        # Accessor reads run on worker threads
        connect_args["check_same_thread"] = False

    _engine = create_engine(database_url, echo=echo, connect_args=connect_args)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("Database engine initialized (%s)", _engine.url.get_backend_name())
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine() first.")
    return _engine


def get_session_factory() -> sessionmaker:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine() first.")
    return _SessionFactory


def create_tables(engine: Optional[Engine] = None) -> None:
    Base.metadata.create_all(engine or get_engine())