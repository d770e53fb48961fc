"""Key store reading signing keys and sessions from the application database."""
from __future__ import annotations

import re
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlgate.adapters.output.database.sqlalchemy_adapter import engine_message
from sqlgate.domain.errors import ExecutionFailed
from sqlgate.ports.output.key_store import KeyStore

_IDENTIFIER = re.compile(r'^\w+(\.\w+)?$')


class SqlAlchemyKeyStore(KeyStore):
  def __init__(
    self,
    engine: Engine,
    key_table: str = 'giis_token_key',
    session_table: str = 'giis_auth_session',
  ) -> None:
    for table in (key_table, session_table):
      if not _IDENTIFIER.match(table):
        raise ValueError(f'Invalid table name: {table!r}')
    self._engine = engine
    self._key_sql = text(f'SELECT b.token_key FROM {key_table} b WHERE b.key_id = :key_id')
    self._session_sql = text(f'SELECT a.user_id FROM {session_table} a WHERE a.jwt_id = :jwt_id')

  def signing_key(self, key_id: str) -> Optional[str]:
    value = self._scalar(self._key_sql, key_id=key_id)
    return str(value) if value else None

  def session_subject(self, token_id: str) -> Optional[str]:
    value = self._scalar(self._session_sql, jwt_id=token_id)
    return None if value is None else str(value)

  def _scalar(self, statement, **params: Any) -> Any:
    try:
      with self._engine.connect() as connection:
        return connection.execute(statement, params).scalar()
    except SQLAlchemyError as exc:
      raise ExecutionFailed(engine_message(exc)) from exc
