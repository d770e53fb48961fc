"""Flat JSON file holding the ordered list of endpoint definitions."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Sequence, Union

from sqlgate.domain.entities.endpoint_spec import EndpointSpec
from sqlgate.domain.errors import SpecStoreError
from sqlgate.ports.output.spec_store import SpecStore

logger = logging.getLogger(__name__)


class JsonFileSpecStore(SpecStore):
  """Reads the file on every ``list`` call so edits apply to the next request."""

  def __init__(self, path: Union[str, Path]):
    self._path = Path(path)

  @property
  def path(self) -> Path:
    return self._path

  def list(self) -> List[EndpointSpec]:
    if not self._path.exists():
      logger.info('Creating empty endpoint store at %s', self._path)
      self._write([])
      return []

    try:
      raw = json.loads(self._path.read_text(encoding='utf-8') or '[]')
    except (OSError, json.JSONDecodeError) as exc:
      raise SpecStoreError(f'Failed to read endpoints configuration: {exc}') from exc

    if not isinstance(raw, list):
      raise SpecStoreError('Endpoints configuration must be a JSON array')

    try:
      return [EndpointSpec.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError) as exc:
      raise SpecStoreError(f'Invalid endpoint definition: {exc}') from exc

  def save(self, specs: Sequence[EndpointSpec]) -> List[EndpointSpec]:
    seen = set()
    for spec in specs:
      key = spec.name.lower()
      if key in seen:
        raise SpecStoreError(f'Duplicate endpoint name: {spec.name}')
      seen.add(key)

    self._write([spec.to_dict() for spec in specs])
    logger.info('Saved %d endpoints to %s', len(specs), self._path)
    return list(specs)

  def _write(self, data: List[dict]) -> None:
    try:
      self._path.parent.mkdir(parents=True, exist_ok=True)
      self._path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding='utf-8')
    except OSError as exc:
      raise SpecStoreError(f'Failed to save endpoints: {exc}') from exc
