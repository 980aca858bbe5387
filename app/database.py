import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Explicitly owned connection handle.
    Created once per application, connected in the lifespan startup and
    disposed on shutdown. Route handlers get sessions from it via get_db.
    """

    def __init__(self, url: Optional[str]):
        self.url = url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _build_engine(self) -> Engine:
        if self.url.startswith("sqlite"):
            # SQLite configuration for local development/testing
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.url:
                kwargs["poolclass"] = StaticPool
            return create_engine(self.url, **kwargs)
        return create_engine(self.url, pool_pre_ping=True)

    def connect(self) -> None:
        """
        Open the engine, verify connectivity and emit the schema.
        Any failure is fatal: there is no retry.
        """
        if not self.url:
            raise DatabaseConnectionError("DATABASE_URL is not configured")
        try:
            engine = self._build_engine()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            # Import all models to ensure they are registered with Base.metadata before create_all
            import app.models  # noqa: F401
            Base.metadata.create_all(bind=engine)
        except Exception as e:
            raise DatabaseConnectionError(f"Database connection error: {e}") from e
        self._engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connected", extra={"dialect": engine.dialect.name})

    def session(self) -> Session:
        if self._session_factory is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._session_factory()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection closed")


def get_db(request: Request) -> Iterator[Session]:
    """
    Session Provider: Provides a database session per request.
    Transaction management is handled explicitly in the routers and services.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
