"""Command object describing one incoming request to a declared endpoint."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class EndpointRequest:
  method: str
  path: str
  query: Mapping[str, Any] = field(default_factory=dict)
  body: Any = None
  headers: Mapping[str, str] = field(default_factory=dict)

  def __post_init__(self) -> None:
    if not self.method:
      raise ValueError('method is required')
    if not self.path:
      raise ValueError('path is required')

  @property
  def is_get(self) -> bool:
    return self.method.upper() == 'GET'

  def header(self, name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in self.headers.items():
      if key.lower() == wanted:
        return value
    return None

  def body_params(self) -> Dict[str, Any]:
    return dict(self.body) if isinstance(self.body, Mapping) else {}

  def bind_source(self, path_params: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge path, query and (for non-GET) body values; later sources win."""
    source: Dict[str, Any] = {**path_params, **self.query}
    if not self.is_get:
      source.update(self.body_params())
    return source
