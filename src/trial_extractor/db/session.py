"""Engine and session factory for the record store."""

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trial_extractor.config import get_settings
from trial_extractor.db.base import Base


def make_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


@lru_cache
def get_engine() -> Engine:
    return make_engine(get_settings().database_url)


def make_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def get_session() -> Session:
    """A new session on the configured engine; the caller closes it."""
    return make_session_factory()()


def init_db(engine: Engine | None = None) -> None:
    """Create any missing tables."""
    # Registers the ORM models on Base.metadata
    import trial_extractor.sqlalchemy.articles  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def get_db() -> Generator[Session, None, None]:
    """Yield a session and close it afterwards (FastAPI dependency)."""
    db = get_session()
    try:
        yield db
    finally:
        db.close()
