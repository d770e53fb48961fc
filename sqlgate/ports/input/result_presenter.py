"""Input port for formatting endpoint responses."""
from __future__ import annotations

from typing import Any, Protocol

from sqlgate.application.queries.endpoint_response import EndpointResponse


class ResultPresenter(Protocol):
  def present(self, result: EndpointResponse) -> Any:
    ...

  def present_error(self, error: Exception) -> Any:
    ...
