"""Plain-text presenter used by the CLI."""
from __future__ import annotations

import json

from sqlgate.application.queries.endpoint_response import EndpointResponse
from sqlgate.ports.input.result_presenter import ResultPresenter


class TextPresenter(ResultPresenter):
  def present(self, result: EndpointResponse) -> str:
    lines = [
      f'Endpoint: {result.endpoint or "-"}',
      f'Status: {result.status_code} ({"ok" if result.success else "error"})',
      f'Execution time: {result.execution_time:.3f}s',
    ]
    if result.error:
      lines.append(f'Error: {result.error}')
    for error in result.errors or []:
      lines.append(f'- {error}')
    if result.data:
      lines.append('')
      lines.append(json.dumps(result.data, ensure_ascii=False, indent=2, default=str))
    return '\n'.join(lines)

  def present_error(self, error: Exception) -> str:
    return f'Error: {error}'
