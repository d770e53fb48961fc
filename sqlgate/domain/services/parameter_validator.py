"""Type coercion and constraint checks for extracted bind parameters."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from sqlgate.domain.entities.endpoint_spec import ParameterClass, ParameterSpec, ParameterType
from sqlgate.domain.errors import RequiredMissing, ValidationFailed, ValidationIssue

Number = Union[int, Decimal]

_NUMBER = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')

# Longest tokens first so HH24 wins over HH and YYYY over YY.
_DATE_TOKENS = {
  'YYYY': '%Y',
  'YY': '%y',
  'MM': '%m',
  'DD': '%d',
  'HH24': '%H',
  'HH': '%I',
  'MI': '%M',
  'SS': '%S',
  'AM': '%p',
  'PM': '%p',
}
_DATE_TOKEN = re.compile('|'.join(sorted(_DATE_TOKENS, key=len, reverse=True)))


class ConstraintViolation(ValueError):
  """Raised by the single-value checks; turned into a ValidationIssue by the validator."""


def translate_date_format(date_format: str) -> str:
  """Translate an Oracle-style template (``YYYY-MM-DD HH24:MI:SS``) to a ``strptime`` one."""
  escaped = date_format.replace('%', '%%')
  return _DATE_TOKEN.sub(lambda match: _DATE_TOKENS[match.group(0)], escaped)


def validate_string(value: str, param: ParameterSpec) -> str:
  constraints = param.string_constraints
  if constraints is None:
    return value

  if constraints.max_length and len(value) > constraints.max_length:
    raise ConstraintViolation(f'Value exceeds maximum length of {constraints.max_length} characters')

  allowed = constraints.allowed_list()
  if allowed and value not in allowed:
    raise ConstraintViolation(f"Value must be one of: {', '.join(allowed)}")
  return value


def validate_number(value: str, param: ParameterSpec) -> Number:
  if not _NUMBER.match(value):
    raise ConstraintViolation(f'Invalid number value: {value}')
  try:
    number = Decimal(value)
  except InvalidOperation as exc:
    raise ConstraintViolation(f'Invalid number value: {value}') from exc

  constraints = param.number_constraints
  if constraints is not None:
    if constraints.minimum is not None and number < Decimal(str(constraints.minimum)):
      raise ConstraintViolation(f'Value must be greater than or equal to {_format_bound(constraints.minimum)}')
    if constraints.maximum is not None and number > Decimal(str(constraints.maximum)):
      raise ConstraintViolation(f'Value must be less than or equal to {_format_bound(constraints.maximum)}')
    if constraints.precision is not None:
      if constraints.precision == 0:
        if number != number.to_integral_value():
          raise ConstraintViolation('Value must be a whole number')
      else:
        decimals = len(value.split('.', 1)[1]) if '.' in value else 0
        if decimals > constraints.precision:
          raise ConstraintViolation(f'Value cannot have more than {constraints.precision} decimal places')

  if number == number.to_integral_value() and '.' not in value:
    return int(number)
  return number


def validate_date(value: str, param: ParameterSpec) -> str:
  date_format = param.date_format
  try:
    datetime.strptime(value, translate_date_format(date_format))
  except ValueError as exc:
    raise ConstraintViolation(f'Invalid date format. Expected format: {date_format}') from exc
  return value


@dataclass
class ParameterValidator:
  """Validates a batch of values and collects every failure before raising."""

  def validate(
    self,
    names: Sequence[str],
    parameter_class: ParameterClass,
    specs: Mapping[str, ParameterSpec],
    source: Mapping[str, Any],
  ) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    issues: List[ValidationIssue] = []
    for name in names:
      param = specs.get(name) or ParameterSpec.default(name)
      issue = self._check(name, parameter_class, param, source.get(name), values)
      if issue is not None:
        issues.append(issue)
    if issues:
      raise ValidationFailed(issues)
    return values

  def convert(self, param: ParameterSpec, parameter_class: ParameterClass, raw: Any) -> Any:
    """Validate a single value, raising ValidationFailed on error."""
    values: Dict[str, Any] = {}
    issue = self._check(param.name, parameter_class, param, raw, values)
    if issue is not None:
      raise ValidationFailed([issue])
    return values[param.name]

  def _check(
    self,
    name: str,
    parameter_class: ParameterClass,
    param: ParameterSpec,
    raw: Any,
    values: Dict[str, Any],
  ) -> Optional[ValidationIssue]:
    if _is_blank(raw):
      if param.required:
        return RequiredMissing(name, parameter_class.value, 'value is required')
      values[name] = None
      return None

    if param.type in (ParameterType.OBJECT, ParameterType.ARRAY):
      values[name] = raw
      return None

    text = str(raw).strip()
    try:
      if param.type is ParameterType.NUMBER:
        values[name] = validate_number(text, param)
      elif param.type is ParameterType.DATE:
        values[name] = validate_date(text, param)
      else:
        values[name] = validate_string(text, param)
    except ConstraintViolation as exc:
      return ValidationIssue(name, parameter_class.value, str(exc))
    return None


def _is_blank(value: Any) -> bool:
  return value is None or (isinstance(value, str) and value.strip() == '')


def _format_bound(bound: float) -> str:
  return str(int(bound)) if float(bound).is_integer() else str(bound)
