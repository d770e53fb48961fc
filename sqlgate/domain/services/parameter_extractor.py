"""Placeholder scanning and rewriting for endpoint SQL text.

Four placeholder kinds are recognised:

- ``{name}``  path-origin bind
- ``:name``   query-origin bind
- ``@name``   output bind produced by a procedure
- ``$name``   whole-payload bind (at most one per statement)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from sqlgate.domain.errors import MalformedStatement

_TOKEN = re.compile(
  r'\{(?P<path>\w+)\}'
  r'|(?<![:\w\\]):(?P<query>\w+)'
  r'|(?<![@\w])@(?P<output>\w+)'
  r'|(?<![\w$])\$(?P<dollar>\w+)'
)

_PROCEDURE_WRAPPER = re.compile(r'^BEGIN\s*|\s*;?\s*END;?$', re.IGNORECASE)


class PlaceholderKind(str, Enum):
  PATH = 'path'
  QUERY = 'query'
  OUTPUT = 'output'
  DOLLAR = 'dollar'


@dataclass(frozen=True)
class Placeholder:
  kind: PlaceholderKind
  name: str
  start: int
  end: int


@dataclass(frozen=True)
class ParameterSet:
  """Disjoint, ordered parameter names found in one statement."""

  path_params: List[str] = field(default_factory=list)
  query_params: List[str] = field(default_factory=list)
  output_params: List[str] = field(default_factory=list)
  dollar_param: Optional[str] = None


def scan_placeholders(text: Optional[str]) -> List[Placeholder]:
  """Single left-to-right pass recording every placeholder span."""
  if not text:
    return []
  found: List[Placeholder] = []
  for match in _TOKEN.finditer(text):
    kind = PlaceholderKind(match.lastgroup)
    found.append(Placeholder(kind=kind, name=match.group(match.lastgroup), start=match.start(), end=match.end()))
  return found


def extract_dollar_param(text: Optional[str]) -> Optional[str]:
  names = _unique(p.name for p in scan_placeholders(text) if p.kind is PlaceholderKind.DOLLAR)
  if len(names) > 1:
    raise MalformedStatement(f"Only one $ parameter is allowed per statement, found: {', '.join(names)}")
  return names[0] if names else None


def extract_parameters(text: Optional[str]) -> ParameterSet:
  """Classify placeholder names with precedence path > query > dollar > output."""
  placeholders = scan_placeholders(text)
  dollar = extract_dollar_param(text)

  def names_of(kind: PlaceholderKind) -> List[str]:
    return _unique(p.name for p in placeholders if p.kind is kind)

  path_params = names_of(PlaceholderKind.PATH)
  query_params = [name for name in names_of(PlaceholderKind.QUERY) if name not in path_params]
  if dollar in path_params or dollar in query_params:
    dollar = None
  output_params = [
    name for name in names_of(PlaceholderKind.OUTPUT)
    if name not in path_params and name not in query_params and name != dollar
  ]
  return ParameterSet(
    path_params=path_params,
    query_params=query_params,
    output_params=output_params,
    dollar_param=dollar,
  )


def rewrite_placeholders(
  text: str,
  replace: Callable[[Placeholder], Optional[str]],
  placeholders: Optional[Sequence[Placeholder]] = None,
) -> str:
  """Replace placeholders back to front; ``replace`` returning ``None`` keeps the original."""
  spans = list(placeholders) if placeholders is not None else scan_placeholders(text)
  result = text
  for placeholder in sorted(spans, key=lambda p: p.start, reverse=True):
    replacement = replace(placeholder)
    if replacement is None:
      continue
    result = result[:placeholder.start] + replacement + result[placeholder.end:]
  return result


def to_named_binds(text: str, kinds: Sequence[PlaceholderKind], names: Optional[Sequence[str]] = None) -> str:
  """Turn placeholders of ``kinds`` into ``:name`` binds."""
  wanted = set(kinds)

  def replace(placeholder: Placeholder) -> Optional[str]:
    if placeholder.kind not in wanted:
      return None
    if names is not None and placeholder.name not in names:
      return None
    return f':{placeholder.name}'

  return rewrite_placeholders(text, replace)


def to_positional(
  text: str,
  values: Mapping[str, Any],
  marker: str = '?',
) -> Tuple[str, List[Any]]:
  """Replace ``{name}``/``:name`` placeholders that have a value with positional markers.

  Returns the rewritten statement and the values in marker order. When the
  marker is ``%s`` and at least one value is bound, literal percent signs are
  doubled for format-style drivers.
  """
  positional = [
    p for p in scan_placeholders(text)
    if p.kind in (PlaceholderKind.PATH, PlaceholderKind.QUERY) and p.name in values
  ]

  if marker == '%s' and positional:
    pieces: List[str] = []
    cursor = 0
    for placeholder in positional:
      pieces.append(text[cursor:placeholder.start].replace('%', '%%'))
      pieces.append(marker)
      cursor = placeholder.end
    pieces.append(text[cursor:].replace('%', '%%'))
    statement = ''.join(pieces)
  else:
    statement = rewrite_placeholders(text, lambda _: marker, positional)

  return statement, [values[p.name] for p in positional]


def inline_output_values(text: str, outputs: Mapping[str, Any]) -> str:
  """Substitute ``@name`` placeholders with literal procedure output values."""

  def replace(placeholder: Placeholder) -> Optional[str]:
    if placeholder.kind is not PlaceholderKind.OUTPUT or placeholder.name not in outputs:
      return None
    return sql_literal(outputs[placeholder.name])

  return rewrite_placeholders(text, replace)


def sql_literal(value: Any) -> str:
  if value is None:
    return 'NULL'
  if isinstance(value, str):
    escaped = value.replace("'", "''")
    return f"'{escaped}'"
  return str(value)


def normalize_procedure_body(body: str) -> str:
  """Strip ``BEGIN``/``END;`` wrappers and the trailing semicolon."""
  return _PROCEDURE_WRAPPER.sub('', body.strip()).strip().rstrip(';').strip()


def _unique(names) -> List[str]:
  seen: List[str] = []
  for name in names:
    if name not in seen:
      seen.append(name)
  return seen
