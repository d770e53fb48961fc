"""Simple dependency wiring helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from sqlgate.adapters.output.database.engine_factory import build_engine
from sqlgate.adapters.output.database.mysql_adapter import MySQLDialectAdapter
from sqlgate.adapters.output.database.oracle_adapter import OracleDialectAdapter
from sqlgate.adapters.output.database.sqlalchemy_adapter import SqlAlchemyDialectAdapter
from sqlgate.adapters.output.database.sqlalchemy_key_store import SqlAlchemyKeyStore
from sqlgate.adapters.output.store.json_file_spec_store import JsonFileSpecStore
from sqlgate.application.handlers.endpoint_request_handler import EndpointRequestHandler
from sqlgate.application.services.auth_guard import AuthGuard
from sqlgate.application.services.execution_orchestrator import ExecutionOrchestrator
from sqlgate.common.config import DatabaseType, Settings
from sqlgate.ports.output.payload_validator import PayloadValidator


@dataclass
class Container:
  settings: Settings
  engine: Engine
  dialect_adapter: SqlAlchemyDialectAdapter
  spec_store: JsonFileSpecStore
  handler: EndpointRequestHandler


def build_dialect_adapter(db_type: DatabaseType, engine: Engine) -> SqlAlchemyDialectAdapter:
  if db_type is DatabaseType.ORACLE:
    return OracleDialectAdapter(engine)
  return MySQLDialectAdapter(engine)


def create_container(settings: Settings, payload_validator: Optional[PayloadValidator] = None) -> Container:
  engine = build_engine(settings)
  dialect_adapter = build_dialect_adapter(settings.db_type, engine)
  spec_store = JsonFileSpecStore(settings.endpoints_path)
  key_store = SqlAlchemyKeyStore(
    engine,
    key_table=settings.token_key_table,
    session_table=settings.auth_session_table,
  )
  orchestrator = ExecutionOrchestrator(
    dialect_adapter,
    payload_validator=payload_validator,
    log_sql=settings.log_sql,
  )
  handler = EndpointRequestHandler(spec_store, orchestrator, AuthGuard(key_store))

  return Container(
    settings=settings,
    engine=engine,
    dialect_adapter=dialect_adapter,
    spec_store=spec_store,
    handler=handler,
  )
