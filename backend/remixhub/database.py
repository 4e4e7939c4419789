"""
RemixHub Registry - Database Configuration
SQLAlchemy storage handle for the registration cache
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


class Database:
    """
    Lifetime-scoped storage handle.

    Built once at process start and passed to whatever needs a session.
    connect() is idempotent: calling it again returns the same handle
    without creating a second engine. dispose() releases the pool at
    shutdown.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        self.echo = echo
        self.engine_kwargs: Dict[str, Any] = engine_kwargs
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> "Database":
        if self._engine is not None:
            logger.debug("Using existing database engine")
            return self

        kwargs = dict(self.engine_kwargs)
        if self.url.startswith("sqlite"):
            connect_args = kwargs.setdefault("connect_args", {})
            connect_args.setdefault("check_same_thread", False)

        self._engine = create_engine(self.url, echo=self.echo, **kwargs)
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info(f"Database engine created for {self._engine.url.render_as_string(hide_password=True)}")
        return self

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    def session(self) -> Session:
        """Open a new session bound to this handle."""
        if self._sessionmaker is None:
            self.connect()
        return self._sessionmaker()

    def init_schema(self) -> None:
        """Create all tables."""
        # Models must be imported so their tables are registered on Base
        from .models import db_models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._sessionmaker = None


def get_db(request: Request):
    """Dependency for FastAPI - yields a request-scoped session."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
