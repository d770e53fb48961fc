"""MySQL adapter: OUT parameters emulated through session variables."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sqlgate.adapters.output.database.sqlalchemy_adapter import (
  SqlAlchemyDialectAdapter,
  bind_values,
  fetch_rows,
  typed_text,
)
from sqlgate.domain.services.parameter_extractor import to_positional
from sqlgate.ports.output.dialect_adapter import BindValue, OutputParam

logger = logging.getLogger(__name__)

_POSITIONAL_MARKERS = {
  'qmark': '?',
  'format': '%s',
  'pyformat': '%s',
}


def positional_marker(paramstyle: str) -> str:
  return _POSITIONAL_MARKERS.get(paramstyle, '?')


def prepare_procedure(body: str, binds: Mapping[str, BindValue], marker: str = '?') -> Tuple[str, List[Any]]:
  """Replace bound placeholders with positional markers, keeping ``@name`` session variables."""
  return to_positional(body.strip(), bind_values(binds), marker)


class MySQLDialectAdapter(SqlAlchemyDialectAdapter):
  name = 'mysql'
  ping_statement = 'SELECT NOW() AS timestamp'

  def run_query(self, sql: str, binds: Mapping[str, BindValue], auto_commit: bool = False) -> List[Dict[str, Any]]:
    try:
      with self._engine.connect() as connection:
        result = connection.execute(typed_text(sql, binds), bind_values(binds))
        rows = fetch_rows(result)
        if auto_commit:
          connection.commit()
        return rows
    except SQLAlchemyError as exc:
      logger.error('MySQL query failed: %s', exc)
      raise self._failure(exc) from exc

  def run_procedure(
    self,
    original_body: str,
    rewritten_body: str,
    binds: Mapping[str, BindValue],
    outputs: Sequence[OutputParam],
    auto_commit: bool = False,
  ) -> Dict[str, Any]:
    """Reset outputs, execute, then read each ``@name`` back, all in one transaction.

    The transaction commits once when every step succeeded and
    ``auto_commit`` is set; any failure rolls the whole sequence back.
    """
    captured: Dict[str, Any] = {}
    try:
      with self._engine.connect() as connection:
        marker = positional_marker(connection.dialect.paramstyle)
        statement, positional = prepare_procedure(rewritten_body, binds, marker)
        transaction = connection.begin()
        try:
          for output in outputs:
            connection.execute(text(f'SET @{output.name} = NULL'))

          if positional:
            connection.exec_driver_sql(statement, tuple(positional))
          else:
            connection.exec_driver_sql(statement)

          for output in outputs:
            captured[output.name] = connection.execute(text(f'SELECT @{output.name} AS value')).scalar()

          if auto_commit:
            transaction.commit()
          else:
            transaction.rollback()
        except SQLAlchemyError:
          logger.error('MySQL procedure failed, rolling back transaction')
          transaction.rollback()
          raise
    except SQLAlchemyError as exc:
      raise self._failure(exc) from exc
    return captured
