"""Sequences procedure and query execution for a matched endpoint."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.domain.entities.endpoint_spec import EndpointSpec, ParameterClass, ParameterSpec, ParameterType
from sqlgate.domain.errors import EndpointConfigurationError, PayloadInvalid, ValidationFailed, ValidationIssue
from sqlgate.domain.services.parameter_extractor import (
  PlaceholderKind,
  extract_parameters,
  inline_output_values,
  normalize_procedure_body,
  rewrite_placeholders,
  to_named_binds,
)
from sqlgate.domain.services.parameter_validator import ParameterValidator
from sqlgate.ports.output.dialect_adapter import BindValue, DialectAdapter, OutputParam
from sqlgate.ports.output.payload_validator import PayloadValidator

logger = logging.getLogger(__name__)


class ExecutionShape(str, Enum):
  PROCEDURE_ONLY = 'procedure_only'
  QUERY_ONLY = 'query_only'
  PROCEDURE_THEN_QUERY = 'procedure_then_query'
  NEITHER = 'neither'

  @staticmethod
  def of(endpoint: EndpointSpec) -> 'ExecutionShape':
    if endpoint.has_procedure and endpoint.has_query:
      return ExecutionShape.PROCEDURE_THEN_QUERY
    if endpoint.has_procedure:
      return ExecutionShape.PROCEDURE_ONLY
    if endpoint.has_query:
      return ExecutionShape.QUERY_ONLY
    return ExecutionShape.NEITHER


@dataclass
class ProcedurePlan:
  original_body: str
  body: str
  binds: Dict[str, BindValue] = field(default_factory=dict)
  outputs: List[OutputParam] = field(default_factory=list)


@dataclass
class QueryPlan:
  sql: str
  binds: Dict[str, BindValue] = field(default_factory=dict)


@dataclass
class ExecutionPlan:
  shape: ExecutionShape
  procedure: Optional[ProcedurePlan] = None
  query: Optional[QueryPlan] = None


class ExecutionOrchestrator:
  """Builds a validated execution plan and drives the dialect adapter through it."""

  def __init__(
    self,
    adapter: DialectAdapter,
    validator: Optional[ParameterValidator] = None,
    payload_validator: Optional[PayloadValidator] = None,
    log_sql: bool = False,
  ):
    self._adapter = adapter
    self._validator = validator or ParameterValidator()
    self._payload_validator = payload_validator
    self._log_sql = log_sql

  def plan(self, endpoint: EndpointSpec, request: EndpointRequest, path_params: Mapping[str, str]) -> ExecutionPlan:
    """Validate every parameter of the request and prepare the statements.

    All validation issues of the procedure and the query are collected and
    raised together.
    """
    shape = ExecutionShape.of(endpoint)
    if shape is ExecutionShape.NEITHER:
      raise EndpointConfigurationError('Endpoint has no SQL query or procedure configured')

    source = request.bind_source(path_params)
    issues: List[ValidationIssue] = []
    plan = ExecutionPlan(shape=shape)

    if endpoint.has_procedure:
      self._check_payload(endpoint, request)
      plan.procedure = self._plan_procedure(endpoint, source, issues)
    if endpoint.has_query:
      plan.query = self._plan_query(endpoint, source, issues)

    if issues:
      raise ValidationFailed(list(dict.fromkeys(issues)))
    return plan

  def execute(self, endpoint: EndpointSpec, request: EndpointRequest, path_params: Mapping[str, str]) -> List[Dict[str, Any]]:
    plan = self.plan(endpoint, request, path_params)
    return self.run(plan, is_get=request.is_get)

  def run(self, plan: ExecutionPlan, is_get: bool) -> List[Dict[str, Any]]:
    logger.info('Executing %s plan on %s', plan.shape.value, self._adapter.name)
    outputs: Dict[str, Any] = {}

    if plan.procedure is not None:
      procedure = plan.procedure
      if self._log_sql:
        logger.debug('Procedure: %s binds=%s', procedure.body, {k: b.value for k, b in procedure.binds.items()})
      outputs = self._adapter.run_procedure(
        procedure.original_body,
        procedure.body,
        procedure.binds,
        procedure.outputs,
        auto_commit=not is_get,
      )
      logger.debug('Procedure produced outputs for %s', sorted(outputs))

    if plan.query is None:
      return []

    sql = plan.query.sql
    binds = dict(plan.query.binds)
    if outputs:
      sql = inline_output_values(sql, outputs)
      for name in outputs:
        binds.pop(name, None)

    if self._log_sql:
      logger.debug('Query: %s binds=%s', sql, {k: b.value for k, b in binds.items()})
    return self._adapter.run_query(
      sql,
      binds,
      auto_commit=not is_get and plan.shape is ExecutionShape.QUERY_ONLY,
    )

  def _check_payload(self, endpoint: EndpointSpec, request: EndpointRequest) -> None:
    if not endpoint.json_schema or self._payload_validator is None:
      return
    errors = self._payload_validator.validate(endpoint.json_schema, request.body)
    if errors:
      raise PayloadInvalid(errors)

  def _plan_procedure(self, endpoint: EndpointSpec, source: Mapping[str, Any], issues: List[ValidationIssue]) -> ProcedurePlan:
    original = normalize_procedure_body(endpoint.sql_procedure or '')
    params = extract_parameters(original)
    binds: Dict[str, BindValue] = {}

    # A $name already claimed by a path or query parameter binds that value, not the payload.
    named = {params.dollar_param, *params.path_params, *params.query_params}
    body = rewrite_placeholders(
      original,
      lambda p: f':{p.name}' if p.kind in (PlaceholderKind.DOLLAR, PlaceholderKind.PATH) and p.name in named else None,
    )
    if params.dollar_param:
      dollar = params.dollar_param
      binds[dollar] = BindValue(name=dollar, value=json.dumps(dict(source), default=str))

    binds.update(self._bind(params.path_params, ParameterClass.PATH, endpoint, source, issues))
    binds.update(self._bind(params.query_params, ParameterClass.QUERY, endpoint, source, issues))

    output_specs = {**endpoint.parameter_map(ParameterClass.PATH), **endpoint.parameter_map(ParameterClass.QUERY)}
    outputs = [
      OutputParam(name=name, type=output_specs[name].type if name in output_specs else ParameterType.STRING)
      for name in params.output_params
    ]
    return ProcedurePlan(original_body=original, body=body, binds=binds, outputs=outputs)

  def _plan_query(self, endpoint: EndpointSpec, source: Mapping[str, Any], issues: List[ValidationIssue]) -> QueryPlan:
    sql = endpoint.sql_query or ''
    params = extract_parameters(sql)
    binds: Dict[str, BindValue] = {}
    binds.update(self._bind(params.path_params, ParameterClass.PATH, endpoint, source, issues))
    binds.update(self._bind(params.query_params, ParameterClass.QUERY, endpoint, source, issues))
    return QueryPlan(sql=to_named_binds(sql, [PlaceholderKind.PATH]), binds=binds)

  def _bind(
    self,
    names: List[str],
    parameter_class: ParameterClass,
    endpoint: EndpointSpec,
    source: Mapping[str, Any],
    issues: List[ValidationIssue],
  ) -> Dict[str, BindValue]:
    if not names:
      return {}
    specs = endpoint.parameter_map(parameter_class)
    try:
      values = self._validator.validate(names, parameter_class, specs, source)
    except ValidationFailed as exc:
      issues.extend(exc.issues)
      return {}
    return {name: _bind_value(name, value, specs.get(name)) for name, value in values.items()}


def _bind_value(name: str, value: Any, spec: Optional[ParameterSpec]) -> BindValue:
  spec = spec or ParameterSpec.default(name)
  return BindValue(
    name=name,
    value=value,
    type=spec.type,
    date_format=spec.date_format if spec.type is ParameterType.DATE else None,
  )
