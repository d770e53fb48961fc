"""Application handler running the full request pipeline for declared endpoints."""
from __future__ import annotations

import logging
import time
from typing import Optional

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.application.queries.endpoint_response import EndpointResponse
from sqlgate.application.services.auth_guard import AuthGuard
from sqlgate.application.services.endpoint_registry import EndpointRegistry
from sqlgate.application.services.execution_orchestrator import ExecutionOrchestrator
from sqlgate.domain.errors import (
  PayloadInvalid,
  RouteNotFound,
  SqlGateError,
  Unauthorized,
  ValidationFailed,
)
from sqlgate.ports.output.spec_store import SpecStore

logger = logging.getLogger(__name__)


class EndpointRequestHandler:
  """Coordinates route resolution, authorization and execution.

  The registry is re-read from the store on every request so that edits to
  the definitions take effect immediately.
  """

  def __init__(
    self,
    spec_store: SpecStore,
    orchestrator: ExecutionOrchestrator,
    auth_guard: Optional[AuthGuard] = None,
  ):
    self._spec_store = spec_store
    self._orchestrator = orchestrator
    self._auth_guard = auth_guard

  def handle(self, request: EndpointRequest) -> EndpointResponse:
    start = time.perf_counter()
    endpoint_name: Optional[str] = None
    try:
      registry = EndpointRegistry.load(self._spec_store)
      match = registry.resolve(request.method, request.path)
      if match is None:
        raise RouteNotFound(request.method, request.path)
      endpoint_name = match.endpoint.name

      if match.endpoint.require_token:
        request = self._authorize(request)

      rows = self._orchestrator.execute(match.endpoint, request, match.path_params)
      return EndpointResponse(
        success=True,
        data=rows,
        endpoint=endpoint_name,
        execution_time=time.perf_counter() - start,
      )
    except SqlGateError as exc:
      return self._failure(exc, request, endpoint_name, time.perf_counter() - start)
    except Exception:  # noqa: BLE001
      logger.exception('Unexpected error handling %s %s', request.method, request.path)
      return EndpointResponse(
        success=False,
        status_code=500,
        error='Failed to execute endpoint',
        endpoint=endpoint_name,
        execution_time=time.perf_counter() - start,
      )

  def _authorize(self, request: EndpointRequest) -> EndpointRequest:
    if self._auth_guard is None:
      raise SqlGateError('Endpoint requires a token but no auth guard is configured')
    result = self._auth_guard.authorize(request)
    result.raise_for_failure()
    return self._auth_guard.inject_subject(request, result.subject)

  @staticmethod
  def _failure(
    exc: SqlGateError,
    request: EndpointRequest,
    endpoint_name: Optional[str],
    execution_time: float,
  ) -> EndpointResponse:
    response = EndpointResponse(
      success=False,
      status_code=exc.status_code,
      endpoint=endpoint_name,
      execution_time=execution_time,
    )

    if isinstance(exc, (ValidationFailed, PayloadInvalid)):
      logger.info('Validation failed for %s %s: %s', request.method, request.path, exc.message)
      response.errors = list(exc.errors)
    elif isinstance(exc, Unauthorized):
      logger.info('Unauthorized %s %s: %s', request.method, request.path, exc.reason.value)
      response.error = exc.message
      response.extra['reason'] = exc.reason.value
    elif isinstance(exc, RouteNotFound):
      response.error = exc.message
      response.extra['requestedPath'] = exc.path
    else:
      logger.error('Error during endpoint execution of %s %s: %s', request.method, request.path, exc.message)
      response.error = exc.message
    return response
