"""Bearer-token guard resolving the calling user from stored signing keys."""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

import jwt

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.domain.errors import AuthFailureReason, Unauthorized
from sqlgate.ports.output.key_store import KeyStore

logger = logging.getLogger(__name__)

APP_USER_PARAM = 'appUser'
DEFAULT_ALGORITHMS = ('HS256', 'HS384', 'HS512')


@dataclass(frozen=True)
class AuthResult:
  """Either an authenticated subject or a typed failure."""

  subject: Optional[str] = None
  reason: Optional[AuthFailureReason] = None
  message: Optional[str] = None

  @property
  def ok(self) -> bool:
    return self.reason is None

  @staticmethod
  def success(subject: str) -> 'AuthResult':
    return AuthResult(subject=subject)

  @staticmethod
  def failure(reason: AuthFailureReason, message: str) -> 'AuthResult':
    return AuthResult(reason=reason, message=message)

  def raise_for_failure(self) -> None:
    if not self.ok:
      raise Unauthorized(self.reason, self.message or 'Unauthorized')


class AuthGuard:
  """Verifies ``Authorization: Bearer <jwt>`` headers.

  The token header must carry a ``kid`` naming a key in the key store and
  the claims must carry a ``jti`` naming an open session.
  """

  def __init__(self, key_store: KeyStore, algorithms: Sequence[str] = DEFAULT_ALGORITHMS):
    self._key_store = key_store
    self._algorithms = list(algorithms)

  def authorize(self, request: EndpointRequest) -> AuthResult:
    auth_header = request.header('Authorization')
    if not auth_header:
      return AuthResult.failure(AuthFailureReason.MISSING_HEADER, 'No authorization header provided')

    parts = auth_header.split()
    if len(parts) < 2 or parts[0].lower() != 'bearer' or not parts[1]:
      return AuthResult.failure(AuthFailureReason.MISSING_TOKEN, 'No token provided')
    token = parts[1]

    try:
      header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError as exc:
      logger.info('Rejected token with invalid structure: %s', exc)
      return AuthResult.failure(AuthFailureReason.MALFORMED_TOKEN, 'Invalid token structure')

    key_id = header.get('kid')
    if not key_id:
      return AuthResult.failure(AuthFailureReason.MISSING_KEY_ID, 'Token missing keyId')

    encoded_key = self._key_store.signing_key(str(key_id))
    if not encoded_key:
      logger.info('Unknown token key id %s', key_id)
      return AuthResult.failure(AuthFailureReason.UNKNOWN_KEY, 'Invalid token')

    try:
      secret = base64.b64decode(encoded_key)
    except (binascii.Error, ValueError):
      logger.warning('Stored key %s is not valid base64', key_id)
      return AuthResult.failure(AuthFailureReason.UNKNOWN_KEY, 'Invalid token')

    try:
      claims = jwt.decode(token, secret, algorithms=self._algorithms)
    except jwt.ExpiredSignatureError:
      return AuthResult.failure(AuthFailureReason.EXPIRED, 'Token has expired')
    except jwt.InvalidSignatureError:
      return AuthResult.failure(AuthFailureReason.INVALID_SIGNATURE, 'Invalid token signature')
    except jwt.InvalidTokenError as exc:
      logger.info('Token rejected: %s', exc)
      return AuthResult.failure(AuthFailureReason.INVALID_TOKEN, 'Invalid token')

    token_id = claims.get('jti')
    if not token_id:
      return AuthResult.failure(AuthFailureReason.MISSING_JTI, 'Invalid token')

    subject = self._key_store.session_subject(str(token_id))
    if subject is None:
      logger.info('No session found for token id %s', token_id)
      return AuthResult.failure(AuthFailureReason.UNKNOWN_SESSION, 'Invalid token')

    return AuthResult.success(str(subject))

  @staticmethod
  def inject_subject(request: EndpointRequest, subject: str) -> EndpointRequest:
    """Expose the subject as ``appUser``: query string for GET, body otherwise."""
    if request.is_get:
      return replace(request, query={**request.query, APP_USER_PARAM: subject})
    return replace(request, body={**request.body_params(), APP_USER_PARAM: subject})
