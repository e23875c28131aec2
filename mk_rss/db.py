"""Database-backed page cache."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class PageModel(Base):
    """Cached page body."""

    __tablename__ = "page_cache"

    key = Column(String, primary_key=True)
    body = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine."""
    if not connection_string:
        return None

    logger.info("Initializing cache database: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def _as_aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseCache:
    """CacheBackend storing bodies with an explicit write timestamp."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    @classmethod
    def from_connection_string(cls, connection_string: str) -> "DatabaseCache":
        engine = init_engine(connection_string)
        if engine is None:
            raise ValueError("Database cache requires a connection string.")
        return cls(get_session_factory(engine))

    def get(self, key: str, max_age: timedelta) -> Optional[str]:
        try:
            with self.session_factory() as session:
                stmt = select(PageModel).where(PageModel.key == key)
                row = session.execute(stmt).scalar_one_or_none()
                if row is None:
                    return None
                age = datetime.now(timezone.utc) - _as_aware(row.updated_at)
                if age >= max_age:
                    logger.debug("Cache row %s is stale (%s old)", key, age)
                    return None
                return row.body
        except SQLAlchemyError as exc:
            logger.warning("Ignoring cache lookup failure for %s: %s", key, exc)
            return None

    def put(self, key: str, value: str) -> None:
        with self.session_factory() as session:
            stmt = select(PageModel).where(PageModel.key == key)
            existing = session.execute(stmt).scalar_one_or_none()
            if existing:
                existing.body = value
                existing.updated_at = datetime.now(timezone.utc)
            else:
                session.add(
                    PageModel(
                        key=key, body=value, updated_at=datetime.now(timezone.utc)
                    )
                )

            try:
                session.commit()
            except Exception:
                session.rollback()
                raise
