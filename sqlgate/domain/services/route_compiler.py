"""Compile URL templates such as ``/api/orders/{id}`` into path matchers."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern

logger = logging.getLogger(__name__)

_TRAILING_PARAM = re.compile(r'/\{(\w+)\}$')
_PARAM = re.compile(r'\{(\w+)\}')


@dataclass(frozen=True)
class RouteMatcher:
  """Matcher for one URL template.

  ``regex`` is ``None`` when the template could not be compiled; such a
  matcher never matches anything.
  """

  template: str
  regex: Optional[Pattern[str]]
  param_names: List[str]
  optional_param: Optional[str] = None

  def match(self, path: str) -> Optional[Dict[str, str]]:
    if self.regex is None:
      return None
    found = self.regex.match(path)
    if not found:
      return None
    return {name: value for name, value in found.groupdict().items() if value is not None}


@lru_cache(maxsize=512)
def compile_route(template: str) -> RouteMatcher:
  """Build a matcher for ``template``.

  A trailing ``/{name}`` becomes an optional segment; every other
  ``{name}`` matches exactly one path segment. The result is anchored and
  tolerates one trailing slash.
  """
  if not template:
    return RouteMatcher(template=template, regex=None, param_names=[])

  base = template
  optional_param: Optional[str] = None
  optional_segment = ''

  trailing = _TRAILING_PARAM.search(base)
  if trailing:
    optional_param = trailing.group(1)
    base = base[:trailing.start()]
    optional_segment = f'(?:/(?P<{optional_param}>[^/]+))?'

  param_names: List[str] = [optional_param] if optional_param else []
  pieces: List[str] = []
  cursor = 0
  for placeholder in _PARAM.finditer(base):
    name = placeholder.group(1)
    pieces.append(re.escape(base[cursor:placeholder.start()]))
    pieces.append(f'(?P<{name}>[^/]+)')
    param_names.append(name)
    cursor = placeholder.end()
  pieces.append(re.escape(base[cursor:]))

  pattern = f"^{''.join(pieces)}{optional_segment}/?$"
  try:
    regex = re.compile(pattern)
  except re.error as exc:
    logger.warning('Could not compile route template %r: %s', template, exc)
    return RouteMatcher(template=template, regex=None, param_names=[])

  return RouteMatcher(
    template=template,
    regex=regex,
    param_names=param_names,
    optional_param=optional_param,
  )
