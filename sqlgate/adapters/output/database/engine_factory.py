"""Pooled SQLAlchemy engine construction for the configured backend."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from sqlgate.common.config import Settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
  """Create an engine whose pool is bounded, recycles idle connections and pings before use."""
  url = make_url(settings.database_url)
  logger.info('Creating %s engine for %s', settings.db_type.value, url.render_as_string(hide_password=True))
  return create_engine(
    url,
    pool_size=settings.pool_size,
    max_overflow=settings.pool_max_overflow,
    pool_recycle=settings.pool_recycle,
    pool_timeout=settings.pool_timeout,
    pool_pre_ping=True,
    echo=settings.log_sql,
  )
