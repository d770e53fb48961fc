"""Output port for token signing keys and authenticated sessions."""
from __future__ import annotations

from typing import Optional, Protocol


class KeyStore(Protocol):
  def signing_key(self, key_id: str) -> Optional[str]:
    """Return the base64-encoded signing key registered under ``key_id``."""
    ...

  def session_subject(self, token_id: str) -> Optional[str]:
    """Return the user id of the session opened for token ``token_id``."""
    ...
