"""Domain exceptions raised while resolving and executing declared endpoints."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class SqlGateError(Exception):
  """Base exception carrying the HTTP status it maps to."""

  status_code: int = 500

  def __init__(self, message: str):
    super().__init__(message)
    self.message = message


class RouteNotFound(SqlGateError):
  status_code = 404

  def __init__(self, method: str, path: str):
    super().__init__('Endpoint not found for the given full path and method')
    self.method = method
    self.path = path


class AuthFailureReason(str, Enum):
  MISSING_HEADER = 'missing_header'
  MISSING_TOKEN = 'missing_token'
  MALFORMED_TOKEN = 'malformed_token'
  MISSING_KEY_ID = 'missing_key_id'
  UNKNOWN_KEY = 'unknown_key'
  EXPIRED = 'expired'
  INVALID_SIGNATURE = 'invalid_signature'
  INVALID_TOKEN = 'invalid_token'
  MISSING_JTI = 'missing_jti'
  UNKNOWN_SESSION = 'unknown_session'


class Unauthorized(SqlGateError):
  status_code = 401

  def __init__(self, reason: AuthFailureReason, message: str):
    super().__init__(message)
    self.reason = reason


@dataclass(frozen=True)
class ValidationIssue:
  """A single rejected parameter value."""

  parameter: str
  parameter_class: str
  reason: str

  def __str__(self) -> str:
    return f"Invalid value for {self.parameter_class} parameter '{self.parameter}': {self.reason}"


class RequiredMissing(ValidationIssue):
  def __str__(self) -> str:
    return f"Required {self.parameter_class} parameter '{self.parameter}' must be provided."


class ValidationFailed(SqlGateError):
  status_code = 400

  def __init__(self, issues: Sequence[ValidationIssue]):
    self.issues: List[ValidationIssue] = list(issues)
    super().__init__('; '.join(str(issue) for issue in self.issues) or 'Validation failed')

  @property
  def errors(self) -> List[str]:
    return [str(issue) for issue in self.issues]


class PayloadInvalid(SqlGateError):
  """Raised when the request body does not satisfy the endpoint's payload schema."""

  status_code = 400

  def __init__(self, errors: Sequence[str]):
    self.errors = list(errors)
    super().__init__('; '.join(self.errors))


class MalformedStatement(SqlGateError):
  """Structural problem found while rewriting SQL text. Never collected, always fatal."""

  status_code = 400


class ExecutionFailed(SqlGateError):
  status_code = 500

  def __init__(self, message: str, dialect: Optional[str] = None):
    super().__init__(message)
    self.dialect = dialect


class EndpointConfigurationError(SqlGateError):
  status_code = 500


class SpecStoreError(SqlGateError):
  status_code = 500
