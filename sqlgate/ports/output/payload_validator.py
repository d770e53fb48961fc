"""Output port for JSON payload validation against an endpoint schema."""
from __future__ import annotations

from typing import Any, List, Mapping, Protocol


class PayloadValidator(Protocol):
  def validate(self, schema: Mapping[str, Any], payload: Any) -> List[str]:
    """Return readable error messages; an empty list means the payload is valid."""
    ...
