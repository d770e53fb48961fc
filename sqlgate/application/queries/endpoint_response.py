"""Application-level result of executing a declared endpoint."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class EndpointResponse:
  success: bool
  status_code: int = 200
  data: List[Dict[str, Any]] = field(default_factory=list)
  error: Optional[str] = None
  errors: Optional[List[str]] = None
  endpoint: Optional[str] = None
  execution_time: float = 0.0
  timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
  extra: Dict[str, Any] = field(default_factory=dict)
