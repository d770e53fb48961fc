from __future__ import annotations

import base64
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import jwt
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
  sys.path.insert(0, str(ROOT_DIR))

from sqlgate.domain.entities.endpoint_spec import EndpointSpec  # noqa: E402
from sqlgate.domain.errors import ExecutionFailed  # noqa: E402

SECRET = b'0123456789abcdef0123456789abcdef'
ENCODED_SECRET = base64.b64encode(SECRET).decode('ascii')


class FakeDialectAdapter:
  """Records every call and returns canned rows/outputs."""

  name = 'fake'

  def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, outputs: Optional[Dict[str, Any]] = None):
    self.rows = rows or []
    self.outputs = outputs or {}
    self.error: Optional[str] = None
    self.queries: List[Dict[str, Any]] = []
    self.procedures: List[Dict[str, Any]] = []

  def run_query(self, sql, binds, auto_commit=False):
    self.queries.append({'sql': sql, 'binds': dict(binds), 'auto_commit': auto_commit})
    if self.error:
      raise ExecutionFailed(self.error, dialect=self.name)
    return list(self.rows)

  def run_procedure(self, original_body, rewritten_body, binds, outputs, auto_commit=False):
    self.procedures.append({
      'original_body': original_body,
      'body': rewritten_body,
      'binds': dict(binds),
      'outputs': list(outputs),
      'auto_commit': auto_commit,
    })
    if self.error:
      raise ExecutionFailed(self.error, dialect=self.name)
    return dict(self.outputs)

  def ping(self):
    return '2024-05-01T10:00:00'


class InMemorySpecStore:
  def __init__(self, records: Sequence[Mapping[str, Any]] = ()):
    self.records = [dict(record) for record in records]
    self.reads = 0

  def list(self) -> List[EndpointSpec]:
    self.reads += 1
    return [EndpointSpec.from_dict(record) for record in self.records]

  def save(self, specs):
    self.records = [spec.to_dict() for spec in specs]
    return list(specs)


class FakeKeyStore:
  def __init__(self, keys: Optional[Dict[str, str]] = None, sessions: Optional[Dict[str, str]] = None):
    self.keys = keys if keys is not None else {'k1': ENCODED_SECRET}
    self.sessions = sessions if sessions is not None else {'jti-1': 'USER01'}

  def signing_key(self, key_id: str) -> Optional[str]:
    return self.keys.get(key_id)

  def session_subject(self, token_id: str) -> Optional[str]:
    return self.sessions.get(token_id)


def make_token(
  secret: bytes = SECRET,
  kid: Optional[str] = 'k1',
  jti: Optional[str] = 'jti-1',
  expires_in: int = 300,
) -> str:
  claims: Dict[str, Any] = {'sub': 'someone', 'exp': int(time.time()) + expires_in}
  if jti is not None:
    claims['jti'] = jti
  headers = {'kid': kid} if kid is not None else {}
  return jwt.encode(claims, secret, algorithm='HS256', headers=headers)


@pytest.fixture
def adapter() -> FakeDialectAdapter:
  return FakeDialectAdapter(rows=[{'ID': 7, 'STATUS': 'NEW'}])


@pytest.fixture
def key_store() -> FakeKeyStore:
  return FakeKeyStore()
