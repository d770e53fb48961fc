"""Shared SQLAlchemy plumbing for the dialect adapters."""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import Date, Numeric, String, bindparam, text
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.types import TypeEngine

from sqlgate.domain.entities.endpoint_spec import ParameterType
from sqlgate.domain.errors import ExecutionFailed
from sqlgate.domain.services.parameter_extractor import PlaceholderKind, scan_placeholders
from sqlgate.ports.output.dialect_adapter import BindValue, DialectAdapter


class SqlAlchemyDialectAdapter(DialectAdapter):
  """Base class holding the engine and the row/bind conversions both engines share."""

  name = 'sqlalchemy'
  ping_statement = 'SELECT 1'

  def __init__(self, engine: Engine):
    self._engine = engine

  @property
  def engine(self) -> Engine:
    return self._engine

  def ping(self) -> Any:
    try:
      with self._engine.connect() as connection:
        return connection.execute(text(self.ping_statement)).scalar()
    except SQLAlchemyError as exc:
      raise self._failure(exc) from exc

  def _failure(self, exc: SQLAlchemyError) -> ExecutionFailed:
    return ExecutionFailed(engine_message(exc), dialect=self.name)


def typed_text(statement: str, binds: Mapping[str, BindValue], extra: Iterable[Any] = ()) -> TextClause:
  """Build a text clause with typed bind parameters for the names present in ``statement``."""
  present = {p.name for p in scan_placeholders(statement) if p.kind is PlaceholderKind.QUERY}
  params = [
    bindparam(name, type_=sql_type(bind.type))
    for name, bind in binds.items()
    if name in present
  ]
  return text(statement).bindparams(*params, *extra)


def bind_values(binds: Mapping[str, BindValue]) -> Dict[str, Any]:
  return {name: plain_value(bind) for name, bind in binds.items()}


def plain_value(bind: BindValue) -> Any:
  if bind.value is None:
    return None
  if bind.type is ParameterType.NUMBER:
    return bind.value
  if bind.type in (ParameterType.OBJECT, ParameterType.ARRAY) or isinstance(bind.value, (dict, list)):
    return json.dumps(bind.value, default=str)
  return str(bind.value)


def sql_type(param_type: ParameterType) -> TypeEngine:
  if param_type is ParameterType.NUMBER:
    return Numeric()
  return String()


def out_type(param_type: ParameterType) -> TypeEngine:
  if param_type is ParameterType.NUMBER:
    return Numeric()
  if param_type is ParameterType.DATE:
    return Date()
  return String(4000)


def fetch_rows(result: CursorResult) -> List[Dict[str, Any]]:
  if not result.returns_rows:
    return []
  columns = list(result.keys())
  return [dict(zip(columns, row)) for row in result.fetchall()]


def engine_message(exc: SQLAlchemyError) -> str:
  original = getattr(exc, 'orig', None)
  return str(original) if original is not None else str(exc)
