"""Read-only view over the declared endpoints for a single request."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlgate.domain.entities.endpoint_spec import EndpointSpec
from sqlgate.domain.services.route_compiler import compile_route
from sqlgate.ports.output.spec_store import SpecStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMatch:
  endpoint: EndpointSpec
  path_params: Dict[str, str]


class EndpointRegistry:
  """Immutable snapshot of endpoint specs.

  Resolution is first-match in store order: overlapping templates such as
  ``/api/a/{x}`` and ``/api/a/fixed`` resolve to whichever is listed first.
  """

  def __init__(self, specs: Sequence[EndpointSpec]):
    self._specs: Tuple[EndpointSpec, ...] = tuple(specs)

  @classmethod
  def load(cls, store: SpecStore) -> 'EndpointRegistry':
    return cls(store.list())

  @property
  def specs(self) -> List[EndpointSpec]:
    return list(self._specs)

  def find_by_name(self, name: str) -> Optional[EndpointSpec]:
    wanted = name.lower()
    for spec in self._specs:
      if spec.name.lower() == wanted:
        return spec
    return None

  def resolve(self, method: str, path: str) -> Optional[RouteMatch]:
    wanted = method.upper()
    for spec in self._specs:
      if spec.method.value != wanted:
        continue
      if not spec.is_routable:
        logger.debug('Skipping %s: url %r is outside the api root', spec.name, spec.url)
        continue
      captured = compile_route(spec.url).match(path)
      if captured is not None:
        logger.debug('Request %s %s matched endpoint %s', wanted, path, spec.name)
        return RouteMatch(endpoint=spec, path_params=captured)
    return None
