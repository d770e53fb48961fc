"""API server entrypoint."""
from __future__ import annotations

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn

from sqlgate.adapters.input.api.fastapi_adapter import FastAPIAdapter
from sqlgate.adapters.presentation.json_presenter import JsonPresenter
from sqlgate.common.config import get_settings
from sqlgate.common.container import create_container
from sqlgate.common.logging_setup import configure_logging


def get_app():
  settings = get_settings()
  configure_logging(settings)
  container = create_container(settings)
  adapter = FastAPIAdapter(
    container.handler,
    JsonPresenter(),
    container.spec_store,
    container.dialect_adapter,
  )
  return adapter.app


def main() -> None:
  settings = get_settings()
  uvicorn.run(get_app(), host=settings.api_host, port=settings.api_port)


if __name__ == '__main__':
  main()
