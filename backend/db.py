"""Database engine and session for the local cache (SQLite by default)."""
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from utils.config import DATABASE_URL

# Runtime safety: when TESTING=true, never use the real cache DB.
if os.environ.get("TESTING") == "true":
    url = DATABASE_URL
    if "cityapp.db" in url or (":memory:" not in url and "test" not in url.lower().split("?")[0]):
        raise RuntimeError(
            "Tests must not run against the real cache. Set TESTING_DATABASE_URL to sqlite:///:memory: "
            "(or another test URL containing :memory: or 'test')."
        )


def build_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    connect_args = {"check_same_thread": False} if "sqlite" in database_url else {}
    engine_kw = {"connect_args": connect_args, "echo": False}
    if "sqlite" in database_url and ":memory:" in database_url:
        engine_kw["poolclass"] = StaticPool
    return create_engine(database_url, **engine_kw)


_engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
