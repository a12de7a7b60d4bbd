"""
Database configuration and session management.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings

# Reduce worst-case startup/readiness delays when the DB host is unreachable.
# (psycopg2 honors connect_timeout in seconds)
_connect_args = {}
_engine_kwargs = {}
_database_url = str(getattr(settings, "DATABASE_URL", ""))
if _database_url.startswith(("postgresql://", "postgres://")):
    _connect_args = {"connect_timeout": 5}
    _engine_kwargs = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
    }
elif _database_url.startswith("sqlite"):
    # Request threads share the engine.
    _connect_args = {"check_same_thread": False}

# Engine creation is lazy: nothing connects until the sql backend is used.
engine = create_engine(
    _database_url,
    connect_args=_connect_args,
    pool_pre_ping=True,  # Verify connections before use
    **_engine_kwargs,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()
