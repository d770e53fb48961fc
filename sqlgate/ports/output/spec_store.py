"""Output port for the externally owned endpoint definitions."""
from __future__ import annotations

from typing import List, Protocol, Sequence

from sqlgate.domain.entities.endpoint_spec import EndpointSpec


class SpecStore(Protocol):
  def list(self) -> List[EndpointSpec]:
    """Return every declared endpoint in iteration (first-match) order."""
    ...

  def save(self, specs: Sequence[EndpointSpec]) -> List[EndpointSpec]:
    """Replace the stored definitions and return what was written."""
    ...
