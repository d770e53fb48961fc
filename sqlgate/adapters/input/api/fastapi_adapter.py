"""FastAPI adapter exposing declared endpoints and the operational routes."""
from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.application.services.endpoint_registry import EndpointRegistry
from sqlgate.domain.entities.endpoint_spec import EndpointSpec
from sqlgate.domain.errors import SqlGateError
from sqlgate.ports.input.endpoint_service import EndpointService
from sqlgate.ports.input.result_presenter import ResultPresenter
from sqlgate.ports.output.dialect_adapter import DialectAdapter
from sqlgate.ports.output.spec_store import SpecStore

logger = logging.getLogger(__name__)

DYNAMIC_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']


class ParameterTypeEnum(str, Enum):
  string = 'string'
  number = 'number'
  date = 'date'
  object = 'object'
  array = 'array'


class StringConstraintsPayload(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  max_length: Optional[int] = Field(default=None, alias='maxLength', ge=1)
  allowed_values: Optional[str] = Field(default=None, alias='allowedValues', description='Comma-separated list')


class NumberConstraintsPayload(BaseModel):
  minimum: Optional[float] = None
  maximum: Optional[float] = None
  precision: Optional[int] = Field(default=None, ge=0, description='0 means integer')


class DateConstraintsPayload(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  date_format: str = Field(default='YYYY-MM-DD', alias='dateFormat', min_length=1)


class ParameterPayload(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  name: str = Field(..., min_length=1)
  type: ParameterTypeEnum = ParameterTypeEnum.string
  required: bool = True
  string_constraints: Optional[StringConstraintsPayload] = Field(default=None, alias='stringConstraints')
  number_constraints: Optional[NumberConstraintsPayload] = Field(default=None, alias='numberConstraints')
  date_constraints: Optional[DateConstraintsPayload] = Field(default=None, alias='dateConstraints')


class EndpointPayload(BaseModel):
  """Endpoint definition as authored by operators."""

  model_config = ConfigDict(populate_by_name=True)

  id: Optional[str] = None
  name: str = Field(..., min_length=1)
  method: str = Field(default='GET', pattern='^(GET|POST|PUT|PATCH|DELETE)$')
  url: str = Field(..., min_length=1, description='URL template, e.g. /api/orders/{id}')
  require_token: bool = Field(default=False, alias='requireToken')
  sql_query: Optional[str] = Field(default=None, alias='sqlQuery')
  sql_procedure: Optional[str] = Field(default=None, alias='sqlProcedure')
  payload: Optional[Any] = None
  path_params: List[ParameterPayload] = Field(default_factory=list, alias='pathParams')
  query_params: List[ParameterPayload] = Field(default_factory=list, alias='queryParams')
  payload_params: List[ParameterPayload] = Field(default_factory=list, alias='payloadParams')
  status: str = 'active'
  json_schema: Optional[Dict[str, Any]] = Field(default=None, alias='jsonSchema')
  last_used: Optional[str] = Field(default=None, alias='lastUsed')
  request_count: int = Field(default=0, alias='requestCount')

  def to_spec(self) -> EndpointSpec:
    return EndpointSpec.from_dict(self.model_dump(mode='json', by_alias=True, exclude_none=True))


class FastAPIAdapter:
  def __init__(
    self,
    endpoint_service: EndpointService,
    presenter: ResultPresenter,
    spec_store: SpecStore,
    dialect_adapter: Optional[DialectAdapter] = None,
  ):
    self._endpoint_service = endpoint_service
    self._presenter = presenter
    self._spec_store = spec_store
    self._dialect_adapter = dialect_adapter
    self.app = FastAPI(
      title='SQL Gate',
      version='0.1.0',
      description='Serves REST endpoints declared as data against an Oracle or MySQL backend.',
    )
    self._configure_routes()

  def _configure_routes(self) -> None:
    @self.app.exception_handler(SqlGateError)
    async def sqlgate_error(request: Request, exc: SqlGateError):
      return JSONResponse(status_code=exc.status_code, content=self._presenter.present_error(exc))

    @self.app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
      logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
      return JSONResponse(status_code=500, content={'success': False, 'error': 'Internal server error'})

    @self.app.get('/api/health', tags=['Health'])
    async def health():
      """Health check endpoint."""
      return {'status': 'ok'}

    @self.app.post('/api/test-connection', tags=['Health'])
    def test_connection():
      """Run a trivial statement against the configured database."""
      if self._dialect_adapter is None:
        return JSONResponse(status_code=500, content={'success': False, 'error': 'No database configured'})
      timestamp = self._dialect_adapter.ping()
      return {
        'success': True,
        'message': f'Successfully connected to {self._dialect_adapter.name} database',
        'timestamp': timestamp,
      }

    @self.app.get('/api/endpoints', tags=['Endpoints'])
    def list_endpoints():
      """List every declared endpoint in resolution order."""
      return [spec.to_dict() for spec in self._spec_store.list()]

    @self.app.post('/api/endpoints', tags=['Endpoints'])
    def save_endpoints(payload: List[EndpointPayload]):
      """Replace the declared endpoints."""
      saved = self._spec_store.save([item.to_spec() for item in payload])
      return [spec.to_dict() for spec in saved]

    @self.app.get('/api/endpoints/{name}', tags=['Endpoints'])
    def get_endpoint(name: str):
      """Return one declared endpoint by name (case-insensitive)."""
      spec = EndpointRegistry.load(self._spec_store).find_by_name(name)
      if spec is None:
        return JSONResponse(status_code=404, content={'success': False, 'error': 'Endpoint not found'})
      return spec.to_dict()

    @self.app.api_route('/api/{path:path}', methods=DYNAMIC_METHODS, tags=['Dynamic'])
    async def execute_endpoint(path: str, request: Request):
      """Resolve and execute a declared endpoint."""
      raw_body = await request.body()
      try:
        body = json.loads(raw_body) if raw_body else None
      except json.JSONDecodeError:
        return JSONResponse(status_code=400, content={'success': False, 'error': 'Invalid JSON body'})

      command = EndpointRequest(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        body=body,
        headers=dict(request.headers),
      )
      result = await run_in_threadpool(self._endpoint_service.handle, command)
      return JSONResponse(status_code=result.status_code, content=self._presenter.present(result))
