"""Oracle adapter: native named binds with OUT directions."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import outparam
from sqlalchemy.exc import SQLAlchemyError

from sqlgate.adapters.output.database.sqlalchemy_adapter import (
  SqlAlchemyDialectAdapter,
  bind_values,
  fetch_rows,
  out_type,
  typed_text,
)
from sqlgate.domain.entities.endpoint_spec import ParameterType
from sqlgate.domain.services.parameter_extractor import Placeholder, PlaceholderKind, rewrite_placeholders
from sqlgate.ports.output.dialect_adapter import BindValue, OutputParam

logger = logging.getLogger(__name__)


def prepare_query(sql: str, binds: Mapping[str, BindValue]) -> Tuple[str, Dict[str, Any]]:
  """Wrap date binds in ``TO_DATE`` using each parameter's declared format."""
  date_formats = {
    name: bind.date_format or 'YYYY-MM-DD'
    for name, bind in binds.items()
    if bind.type is ParameterType.DATE and bind.value is not None
  }

  def replace(placeholder: Placeholder) -> Optional[str]:
    if placeholder.kind is not PlaceholderKind.QUERY or placeholder.name not in date_formats:
      return None
    date_format = date_formats[placeholder.name].replace("'", "''")
    return f"TO_DATE(:{placeholder.name}, '{date_format}')"

  return rewrite_placeholders(sql, replace), bind_values(binds)


def prepare_procedure(body: str, outputs: Sequence[OutputParam]) -> str:
  """Turn ``@name`` outputs into ``:name`` OUT binds inside an anonymous block."""
  names = {output.name for output in outputs}
  rewritten = rewrite_placeholders(
    body,
    lambda p: f':{p.name}' if p.kind is PlaceholderKind.OUTPUT and p.name in names else None,
  )
  return f'BEGIN {rewritten}; END;'


class OracleDialectAdapter(SqlAlchemyDialectAdapter):
  name = 'oracle'
  ping_statement = 'SELECT SYSDATE FROM DUAL'

  def run_query(self, sql: str, binds: Mapping[str, BindValue], auto_commit: bool = False) -> List[Dict[str, Any]]:
    statement, values = prepare_query(sql, binds)
    try:
      with self._engine.connect() as connection:
        result = connection.execute(typed_text(statement, binds), values)
        rows = fetch_rows(result)
        if auto_commit:
          connection.commit()
        return rows
    except SQLAlchemyError as exc:
      logger.error('Oracle query failed: %s', exc)
      raise self._failure(exc) from exc

  def run_procedure(
    self,
    original_body: str,
    rewritten_body: str,
    binds: Mapping[str, BindValue],
    outputs: Sequence[OutputParam],
    auto_commit: bool = False,
  ) -> Dict[str, Any]:
    statement = prepare_procedure(rewritten_body, outputs)
    out_binds = [outparam(output.name, out_type(output.type)) for output in outputs]
    try:
      with self._engine.connect() as connection:
        result = connection.execute(typed_text(statement, binds, out_binds), bind_values(binds))
        captured = dict(result.out_parameters or {}) if outputs else {}
        if auto_commit:
          connection.commit()
        return captured
    except SQLAlchemyError as exc:
      logger.error('Oracle procedure failed: %s', exc)
      raise self._failure(exc) from exc
