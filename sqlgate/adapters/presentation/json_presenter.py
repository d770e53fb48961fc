"""JSON envelope presenter: ``{success, data}`` or ``{success, error(s)}``."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Union

from fastapi.encoders import jsonable_encoder

from sqlgate.application.queries.endpoint_response import EndpointResponse
from sqlgate.ports.input.result_presenter import ResultPresenter


def encode_decimal(value: Decimal) -> Union[int, str]:
  """Whole numbers stay numeric; fractional NUMBER values keep every digit as text."""
  if value.is_finite() and value == value.to_integral_value():
    return int(value)
  return str(value)


DECIMAL_ENCODER = {Decimal: encode_decimal}


class JsonPresenter(ResultPresenter):
  def present(self, result: EndpointResponse) -> Dict[str, Any]:
    if result.success:
      return jsonable_encoder({'success': True, 'data': result.data}, custom_encoder=DECIMAL_ENCODER)

    payload: Dict[str, Any] = {'success': False}
    if result.errors is not None:
      payload['errors'] = result.errors
    else:
      payload['error'] = result.error or 'Failed to execute endpoint'
    payload.update(result.extra)
    return jsonable_encoder(payload, custom_encoder=DECIMAL_ENCODER)

  def present_error(self, error: Exception) -> Dict[str, Any]:
    return {'success': False, 'error': str(error) or 'Failed to execute endpoint'}
