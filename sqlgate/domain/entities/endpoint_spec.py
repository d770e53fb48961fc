"""Domain entities describing declared, SQL-backed endpoints."""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

API_PREFIX = '/api/'

_PLACEHOLDER = re.compile(r'\{(\w+)\}')


class HttpMethod(str, Enum):
  GET = 'GET'
  POST = 'POST'
  PUT = 'PUT'
  PATCH = 'PATCH'
  DELETE = 'DELETE'


class ParameterType(str, Enum):
  STRING = 'string'
  NUMBER = 'number'
  DATE = 'date'
  OBJECT = 'object'
  ARRAY = 'array'


class ParameterClass(str, Enum):
  PATH = 'path'
  QUERY = 'query'
  PAYLOAD = 'payload'


class EndpointStatus(str, Enum):
  ACTIVE = 'active'
  INACTIVE = 'inactive'


@dataclass(frozen=True)
class StringConstraints:
  max_length: Optional[int] = None
  allowed_values: Optional[str] = None

  def allowed_list(self) -> List[str]:
    if not self.allowed_values:
      return []
    return [value.strip() for value in self.allowed_values.split(',') if value.strip()]


@dataclass(frozen=True)
class NumberConstraints:
  minimum: Optional[float] = None
  maximum: Optional[float] = None
  precision: Optional[int] = None


@dataclass(frozen=True)
class DateConstraints:
  date_format: str = 'YYYY-MM-DD'


@dataclass(frozen=True)
class ParameterSpec:
  """Declared metadata for one bind parameter."""

  name: str
  type: ParameterType = ParameterType.STRING
  required: bool = False
  string_constraints: Optional[StringConstraints] = None
  number_constraints: Optional[NumberConstraints] = None
  date_constraints: Optional[DateConstraints] = None

  @property
  def date_format(self) -> str:
    if self.date_constraints and self.date_constraints.date_format:
      return self.date_constraints.date_format
    return DateConstraints().date_format

  @staticmethod
  def default(name: str) -> 'ParameterSpec':
    """Unconstrained, optional string spec used for undeclared names."""
    return ParameterSpec(name=name)

  @staticmethod
  def from_dict(data: Mapping[str, Any]) -> 'ParameterSpec':
    raw_type = str(data.get('type') or 'string').lower()
    param_type = ParameterType(raw_type) if raw_type in ParameterType._value2member_map_ else ParameterType.STRING

    string_data = data.get('stringConstraints')
    number_data = data.get('numberConstraints')
    date_data = data.get('dateConstraints')

    return ParameterSpec(
      name=str(data['name']),
      type=param_type,
      required=bool(data.get('required', False)),
      string_constraints=StringConstraints(
        max_length=_optional_int(string_data.get('maxLength')),
        allowed_values=string_data.get('allowedValues') or None,
      ) if string_data else None,
      number_constraints=NumberConstraints(
        minimum=_optional_float(number_data.get('minimum')),
        maximum=_optional_float(number_data.get('maximum')),
        precision=_optional_int(number_data.get('precision')),
      ) if number_data else None,
      date_constraints=DateConstraints(
        date_format=date_data.get('dateFormat') or DateConstraints().date_format,
      ) if date_data else None,
    )

  def to_dict(self) -> Dict[str, Any]:
    data: Dict[str, Any] = {'name': self.name, 'type': self.type.value, 'required': self.required}
    if self.string_constraints:
      data['stringConstraints'] = _drop_none({
        'maxLength': self.string_constraints.max_length,
        'allowedValues': self.string_constraints.allowed_values,
      })
    if self.number_constraints:
      data['numberConstraints'] = _drop_none({
        'minimum': self.number_constraints.minimum,
        'maximum': self.number_constraints.maximum,
        'precision': self.number_constraints.precision,
      })
    if self.date_constraints:
      data['dateConstraints'] = {'dateFormat': self.date_constraints.date_format}
    return data


@dataclass(frozen=True)
class EndpointSpec:
  """Declarative record defining one routable, SQL-backed operation."""

  id: str
  name: str
  method: HttpMethod
  url: str
  require_token: bool = False
  sql_query: Optional[str] = None
  sql_procedure: Optional[str] = None
  path_params: List[ParameterSpec] = field(default_factory=list)
  query_params: List[ParameterSpec] = field(default_factory=list)
  payload_params: List[ParameterSpec] = field(default_factory=list)
  status: EndpointStatus = EndpointStatus.ACTIVE
  payload: Optional[Any] = None
  json_schema: Optional[Dict[str, Any]] = None
  last_used: Optional[str] = None
  request_count: int = 0

  def __post_init__(self) -> None:
    if not self.name:
      raise ValueError('Endpoint name is required')
    if not self.url:
      raise ValueError('Endpoint url is required')

  @property
  def has_query(self) -> bool:
    return bool(self.sql_query and self.sql_query.strip())

  @property
  def has_procedure(self) -> bool:
    return bool(self.sql_procedure and self.sql_procedure.strip())

  @property
  def is_routable(self) -> bool:
    return self.url.startswith(API_PREFIX)

  def parameter_map(self, parameter_class: ParameterClass) -> Dict[str, ParameterSpec]:
    """Return the declared specs of one class keyed by name."""
    source = {
      ParameterClass.PATH: self.path_params,
      ParameterClass.QUERY: self.query_params,
      ParameterClass.PAYLOAD: self.payload_params,
    }[parameter_class]
    return {param.name: param for param in source}

  def identifier(self) -> str:
    return f'{self.method.value} {self.url}'

  @staticmethod
  def from_dict(data: Mapping[str, Any]) -> 'EndpointSpec':
    url = str(data.get('url') or '')
    path_params = [
      _enforce_structural_requirement(url, ParameterSpec.from_dict(item))
      for item in data.get('pathParams') or []
    ]
    raw_status = str(data.get('status') or 'active').lower()

    return EndpointSpec(
      id=str(data.get('id') or data.get('name') or ''),
      name=str(data.get('name') or ''),
      method=HttpMethod(str(data.get('method') or 'GET').upper()),
      url=url,
      require_token=bool(data.get('requireToken', False)),
      sql_query=data.get('sqlQuery') or None,
      sql_procedure=data.get('sqlProcedure') or None,
      path_params=path_params,
      query_params=[ParameterSpec.from_dict(item) for item in data.get('queryParams') or []],
      payload_params=[ParameterSpec.from_dict(item) for item in data.get('payloadParams') or []],
      status=EndpointStatus(raw_status) if raw_status in EndpointStatus._value2member_map_ else EndpointStatus.ACTIVE,
      payload=data.get('payload'),
      json_schema=data.get('jsonSchema') or None,
      last_used=data.get('lastUsed'),
      request_count=int(data.get('requestCount') or 0),
    )

  def to_dict(self) -> Dict[str, Any]:
    data: Dict[str, Any] = {
      'id': self.id,
      'name': self.name,
      'method': self.method.value,
      'url': self.url,
      'requireToken': self.require_token,
      'sqlQuery': self.sql_query,
      'sqlProcedure': self.sql_procedure,
      'payload': self.payload,
      'pathParams': [param.to_dict() for param in self.path_params],
      'queryParams': [param.to_dict() for param in self.query_params],
      'payloadParams': [param.to_dict() for param in self.payload_params],
      'status': self.status.value,
      'lastUsed': self.last_used,
      'requestCount': self.request_count,
    }
    if self.json_schema:
      data['jsonSchema'] = self.json_schema
    return data


def is_structurally_required(url: str, param_name: str) -> bool:
  """True when anything but an optional single trailing slash follows the placeholder."""
  placeholder = f'{{{param_name}}}'
  index = url.find(placeholder)
  if index == -1:
    return False
  after = url[index + len(placeholder):]
  return after not in ('', '/')


def url_placeholders(url: str) -> List[str]:
  names: List[str] = []
  for name in _PLACEHOLDER.findall(url):
    if name not in names:
      names.append(name)
  return names


def _enforce_structural_requirement(url: str, param: ParameterSpec) -> ParameterSpec:
  if not param.required and is_structurally_required(url, param.name):
    return replace(param, required=True)
  return param


def _optional_int(value: Any) -> Optional[int]:
  if value is None or value == '':
    return None
  return int(value)


def _optional_float(value: Any) -> Optional[float]:
  if value is None or value == '':
    return None
  return float(value)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
  return {key: value for key, value in data.items() if value is not None}
