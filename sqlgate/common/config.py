"""Application-level configuration utilities."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from os import getenv
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


class DatabaseType(str, Enum):
  ORACLE = 'oracle'
  MYSQL = 'mysql'


@dataclass(frozen=True)
class Settings:
  """Immutable application settings, passed explicitly to whatever needs them."""

  db_type: DatabaseType
  database_url: str
  endpoints_path: Path = Path('endpoints.json')
  pool_size: int = 10
  pool_max_overflow: int = 0
  pool_recycle: int = 60
  pool_timeout: int = 30
  token_key_table: str = 'giis_token_key'
  auth_session_table: str = 'giis_auth_session'
  log_level: str = 'INFO'
  log_sql: bool = False
  api_host: str = '0.0.0.0'
  api_port: int = 3001

  def __post_init__(self) -> None:
    if not self.database_url:
      raise ValueError('DATABASE_URL is required')
    if self.pool_size <= 0:
      raise ValueError('DB_POOL_SIZE must be positive')

  @staticmethod
  def from_mapping(env: Mapping[str, str]) -> 'Settings':
    raw_type = (env.get('DB_TYPE') or '').strip().lower()
    if raw_type not in DatabaseType._value2member_map_:
      raise ValueError('DB_TYPE must be "oracle" or "mysql"')

    return Settings(
      db_type=DatabaseType(raw_type),
      database_url=env.get('DATABASE_URL') or '',
      endpoints_path=Path(env.get('ENDPOINTS_PATH') or 'endpoints.json'),
      pool_size=int(env.get('DB_POOL_SIZE') or 10),
      pool_max_overflow=int(env.get('DB_POOL_MAX_OVERFLOW') or 0),
      pool_recycle=int(env.get('DB_POOL_RECYCLE') or 60),
      pool_timeout=int(env.get('DB_POOL_TIMEOUT') or 30),
      token_key_table=env.get('TOKEN_KEY_TABLE') or 'giis_token_key',
      auth_session_table=env.get('AUTH_SESSION_TABLE') or 'giis_auth_session',
      log_level=(env.get('LOG_LEVEL') or 'INFO').upper(),
      log_sql=_flag(env.get('LOG_SQL')),
      api_host=env.get('API_HOST') or '0.0.0.0',
      api_port=int(env.get('API_PORT') or 3001),
    )


@lru_cache(maxsize=1)
def get_settings(env_file: Optional[str] = None) -> Settings:
  """Load settings from environment variables once per process."""
  env_path = Path(env_file) if env_file else Path.cwd() / '.env'
  if env_path.exists():
    load_dotenv(env_path)
  else:
    load_dotenv()

  keys = (
    'DB_TYPE', 'DATABASE_URL', 'ENDPOINTS_PATH', 'DB_POOL_SIZE', 'DB_POOL_MAX_OVERFLOW',
    'DB_POOL_RECYCLE', 'DB_POOL_TIMEOUT', 'TOKEN_KEY_TABLE', 'AUTH_SESSION_TABLE',
    'LOG_LEVEL', 'LOG_SQL', 'API_HOST', 'API_PORT',
  )
  env = {}
  for key in keys:
    value = getenv(key)
    if value is not None:
      env[key] = value
  return Settings.from_mapping(env)


def _flag(value: Optional[str]) -> bool:
  return (value or '').strip().lower() in ('1', 'true', 'yes', 'on')
