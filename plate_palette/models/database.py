"""
SQLAlchemy declarative base and schema creation.

The service reads and writes through Supabase (PostgREST); these models
describe the tables and constraints it relies on and are used to create
them against DATABASE_URL (psycopg2 driver).
"""
import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


def get_engine(database_url: str) -> Engine:
    if not database_url:
        raise ValueError("DATABASE_URL is required to create the schema")
    url = database_url
    # Supabase hands out postgres:// URLs; SQLAlchemy wants the driver spelled out
    if url.startswith("postgres://"):
        url = "postgresql+psycopg2://" + url[len("postgres://"):]
    elif url.startswith("postgresql://"):
        url = "postgresql+psycopg2://" + url[len("postgresql://"):]
    return create_engine(url, pool_pre_ping=True)


def create_schema(database_url: Optional[str] = None, engine: Optional[Engine] = None) -> Engine:
    """Create all tables (idempotent)."""
    # register models on Base.metadata
    import plate_palette.models  # noqa: F401

    engine = engine or get_engine(database_url)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")
    return engine
