from __future__ import annotations

import json
from decimal import Decimal

import pytest

from conftest import FakeDialectAdapter
from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.application.services.execution_orchestrator import ExecutionOrchestrator, ExecutionShape
from sqlgate.domain.entities.endpoint_spec import EndpointSpec, ParameterType
from sqlgate.domain.errors import EndpointConfigurationError, MalformedStatement, PayloadInvalid, ValidationFailed


def endpoint(**overrides) -> EndpointSpec:
  record = {'name': 'orders', 'method': 'GET', 'url': '/api/orders/{id}'}
  record.update(overrides)
  return EndpointSpec.from_dict(record)


def test_query_only_binds_path_and_query_values(adapter: FakeDialectAdapter) -> None:
  spec = endpoint(
    sqlQuery='SELECT * FROM orders WHERE id = {id} AND status = :status',
    pathParams=[{'name': 'id', 'type': 'number'}],
  )
  request = EndpointRequest(method='GET', path='/api/orders/7', query={'status': 'NEW'})

  rows = ExecutionOrchestrator(adapter).execute(spec, request, {'id': '7'})

  assert rows == [{'ID': 7, 'STATUS': 'NEW'}]
  call = adapter.queries[0]
  assert call['sql'] == 'SELECT * FROM orders WHERE id = :id AND status = :status'
  assert call['binds']['id'].value == 7
  assert call['binds']['id'].type is ParameterType.NUMBER
  assert call['binds']['status'].value == 'NEW'
  assert call['auto_commit'] is False
  assert adapter.procedures == []


def test_query_only_commits_for_writes(adapter: FakeDialectAdapter) -> None:
  spec = endpoint(method='POST', url='/api/orders', sqlQuery='UPDATE orders SET status = :status')
  request = EndpointRequest(method='POST', path='/api/orders', body={'status': 'PAID'})

  ExecutionOrchestrator(adapter).execute(spec, request, {})

  assert adapter.queries[0]['auto_commit'] is True
  assert adapter.queries[0]['binds']['status'].value == 'PAID'


def test_body_is_ignored_for_get(adapter: FakeDialectAdapter) -> None:
  spec = endpoint(url='/api/orders', sqlQuery='SELECT * FROM orders WHERE status = :status')
  request = EndpointRequest(method='GET', path='/api/orders', body={'status': 'PAID'})

  ExecutionOrchestrator(adapter).execute(spec, request, {})

  assert adapter.queries[0]['binds']['status'].value is None


def test_procedure_output_is_inlined_into_query() -> None:
  adapter = FakeDialectAdapter(rows=[{'ID': 42}], outputs={'newId': 42})
  spec = endpoint(
    method='POST',
    url='/api/orders',
    sqlProcedure='BEGIN create_order(:customer, @newId); END;',
    sqlQuery='SELECT * FROM orders WHERE id = @newId',
    queryParams=[{'name': 'newId', 'type': 'number'}],
  )
  request = EndpointRequest(method='POST', path='/api/orders', body={'customer': 'C1'})

  rows = ExecutionOrchestrator(adapter).execute(spec, request, {})

  procedure = adapter.procedures[0]
  assert procedure['original_body'] == 'create_order(:customer, @newId)'
  assert procedure['binds']['customer'].value == 'C1'
  assert [(out.name, out.type) for out in procedure['outputs']] == [('newId', ParameterType.NUMBER)]
  assert procedure['auto_commit'] is True

  query = adapter.queries[0]
  assert query['sql'] == 'SELECT * FROM orders WHERE id = 42'
  assert query['binds'] == {}
  assert query['auto_commit'] is False
  assert rows == [{'ID': 42}]


def test_procedure_for_get_does_not_commit() -> None:
  adapter = FakeDialectAdapter()
  spec = endpoint(url='/api/orders', sqlProcedure='refresh_orders')

  rows = ExecutionOrchestrator(adapter).execute(spec, EndpointRequest(method='GET', path='/api/orders'), {})

  assert rows == []
  assert adapter.procedures[0]['auto_commit'] is False
  assert adapter.queries == []


def test_dollar_placeholder_receives_whole_source_as_json() -> None:
  adapter = FakeDialectAdapter()
  spec = endpoint(method='POST', url='/api/orders/{id}', sqlProcedure='save_order({id}, $payload)')
  request = EndpointRequest(method='POST', path='/api/orders/5', query={'dry': '1'}, body={'lines': [1, 2]})

  ExecutionOrchestrator(adapter).execute(spec, request, {'id': '5'})

  procedure = adapter.procedures[0]
  assert procedure['body'] == 'save_order(:id, :payload)'
  assert json.loads(procedure['binds']['payload'].value) == {'id': '5', 'dry': '1', 'lines': [1, 2]}
  assert procedure['binds']['id'].value == '5'


def test_two_dollar_names_are_rejected() -> None:
  spec = endpoint(method='POST', sqlProcedure='p($a, $b)')

  with pytest.raises(MalformedStatement):
    ExecutionOrchestrator(FakeDialectAdapter()).plan(spec, EndpointRequest(method='POST', path='/api/orders/1'), {'id': '1'})


def test_validation_errors_from_procedure_and_query_are_aggregated(adapter: FakeDialectAdapter) -> None:
  spec = endpoint(
    method='POST',
    sqlProcedure='touch({id}, :qty)',
    sqlQuery='SELECT * FROM orders WHERE id = {id} AND code = :code',
    pathParams=[{'name': 'id', 'type': 'number'}],
    queryParams=[
      {'name': 'qty', 'type': 'number', 'numberConstraints': {'precision': 0}},
      {'name': 'code', 'required': True},
    ],
  )
  request = EndpointRequest(method='POST', path='/api/orders/x', body={'qty': '1.5'})

  with pytest.raises(ValidationFailed) as excinfo:
    ExecutionOrchestrator(adapter).execute(spec, request, {'id': 'x'})

  assert excinfo.value.errors == [
    "Invalid value for path parameter 'id': Invalid number value: x",
    "Invalid value for query parameter 'qty': Value must be a whole number",
    "Required query parameter 'code' must be provided.",
  ]
  assert adapter.procedures == []
  assert adapter.queries == []


def test_endpoint_without_statements_is_a_configuration_error(adapter: FakeDialectAdapter) -> None:
  with pytest.raises(EndpointConfigurationError):
    ExecutionOrchestrator(adapter).execute(endpoint(), EndpointRequest(method='GET', path='/api/orders/1'), {'id': '1'})


def test_execution_shapes() -> None:
  assert ExecutionShape.of(endpoint(sqlQuery='SELECT 1')) is ExecutionShape.QUERY_ONLY
  assert ExecutionShape.of(endpoint(sqlProcedure='p')) is ExecutionShape.PROCEDURE_ONLY
  assert ExecutionShape.of(endpoint(sqlProcedure='p', sqlQuery='SELECT 1')) is ExecutionShape.PROCEDURE_THEN_QUERY
  assert ExecutionShape.of(endpoint(sqlQuery='   ')) is ExecutionShape.NEITHER


class RejectingPayloadValidator:
  def __init__(self):
    self.calls = []

  def validate(self, schema, payload):
    self.calls.append((schema, payload))
    return ['total is required']


def test_payload_schema_is_checked_before_procedure(adapter: FakeDialectAdapter) -> None:
  payload_validator = RejectingPayloadValidator()
  schema = {'type': 'object', 'required': ['total']}
  spec = endpoint(method='POST', url='/api/orders', sqlProcedure='create_order', jsonSchema=schema)

  with pytest.raises(PayloadInvalid) as excinfo:
    ExecutionOrchestrator(adapter, payload_validator=payload_validator).execute(
      spec, EndpointRequest(method='POST', path='/api/orders', body={}), {},
    )

  assert excinfo.value.errors == ['total is required']
  assert payload_validator.calls == [(schema, {})]
  assert adapter.procedures == []


def test_decimal_values_keep_precision(adapter: FakeDialectAdapter) -> None:
  spec = endpoint(
    url='/api/orders',
    sqlQuery='SELECT * FROM orders WHERE total > :total',
    queryParams=[{'name': 'total', 'type': 'number', 'numberConstraints': {'precision': 2}}],
  )

  ExecutionOrchestrator(adapter).execute(spec, EndpointRequest(method='GET', path='/api/orders', query={'total': '10.50'}), {})

  assert adapter.queries[0]['binds']['total'].value == Decimal('10.50')


def test_dollar_name_claimed_by_path_binds_the_path_value() -> None:
  adapter = FakeDialectAdapter()
  spec = endpoint(method='POST', url='/api/orders/{x}', sqlProcedure='save_order({x}, :y, $x)')
  request = EndpointRequest(method='POST', path='/api/orders/5', body={'y': 'z'})

  ExecutionOrchestrator(adapter).execute(spec, request, {'x': '5'})

  procedure = adapter.procedures[0]
  assert procedure['body'] == 'save_order(:x, :y, :x)'
  assert {name: bind.value for name, bind in procedure['binds'].items()} == {'x': '5', 'y': 'z'}
