"""Process-wide logging setup."""
from __future__ import annotations

import logging

from sqlgate.common.config import Settings

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def configure_logging(settings: Settings) -> None:
  logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
  if settings.log_sql:
    logging.getLogger('sqlgate').setLevel(logging.DEBUG)
