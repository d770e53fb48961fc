"""Output port for engine-specific query and procedure execution."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from sqlgate.domain.entities.endpoint_spec import ParameterType


@dataclass(frozen=True)
class BindValue:
  """A validated value together with what the engine needs to bind it."""

  name: str
  value: Any
  type: ParameterType = ParameterType.STRING
  date_format: Optional[str] = None


@dataclass(frozen=True)
class OutputParam:
  name: str
  type: ParameterType = ParameterType.STRING


class DialectAdapter(Protocol):
  """Runs statements against one SQL engine."""

  name: str

  def run_query(self, sql: str, binds: Mapping[str, BindValue], auto_commit: bool = False) -> List[Dict[str, Any]]:
    """Execute ``sql`` with named binds and return rows as dictionaries."""
    ...

  def run_procedure(
    self,
    original_body: str,
    rewritten_body: str,
    binds: Mapping[str, BindValue],
    outputs: Sequence[OutputParam],
    auto_commit: bool = False,
  ) -> Dict[str, Any]:
    """Execute a procedure body and return its output values by name."""
    ...

  def ping(self) -> Any:
    """Run a trivial statement and return the server timestamp."""
    ...
