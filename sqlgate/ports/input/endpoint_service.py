"""Input port defining how adapters submit requests to declared endpoints."""
from __future__ import annotations

from typing import Protocol

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.application.queries.endpoint_response import EndpointResponse


class EndpointService(Protocol):
  def handle(self, request: EndpointRequest) -> EndpointResponse:
    ...
