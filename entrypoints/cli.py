"""CLI entrypoint for SQL Gate."""
from __future__ import annotations

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import uvicorn

from sqlgate.adapters.input.cli.cli_adapter import CLIAdapter
from sqlgate.adapters.output.store.json_file_spec_store import JsonFileSpecStore
from sqlgate.adapters.presentation.text_presenter import TextPresenter
from sqlgate.common.config import get_settings
from sqlgate.common.container import create_container
from sqlgate.common.logging_setup import configure_logging


def main() -> None:
  settings = get_settings()
  configure_logging(settings)

  def serve(host: str, port: int) -> None:
    from entrypoints.api_server import get_app
    uvicorn.run(get_app(), host=host, port=port)

  CLIAdapter(
    JsonFileSpecStore(settings.endpoints_path),
    TextPresenter(),
    lambda: create_container(settings).handler,
    serve=serve,
  ).run()


if __name__ == '__main__':
  main()
