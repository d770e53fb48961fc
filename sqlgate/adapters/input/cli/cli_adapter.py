"""CLI adapter for inspecting and calling declared endpoints."""
from __future__ import annotations

import json
from typing import Callable, Dict, Optional, Tuple

import click

from sqlgate.application.commands.endpoint_request import EndpointRequest
from sqlgate.application.services.endpoint_registry import EndpointRegistry
from sqlgate.domain.entities.endpoint_spec import is_structurally_required, url_placeholders
from sqlgate.domain.errors import SqlGateError
from sqlgate.domain.services.parameter_extractor import extract_parameters, normalize_procedure_body
from sqlgate.domain.services.route_compiler import compile_route
from sqlgate.ports.input.endpoint_service import EndpointService
from sqlgate.ports.input.result_presenter import ResultPresenter
from sqlgate.ports.output.spec_store import SpecStore


class CLIAdapter:
  def __init__(
    self,
    spec_store: SpecStore,
    presenter: ResultPresenter,
    service_factory: Callable[[], EndpointService],
    serve: Optional[Callable[[str, int], None]] = None,
  ):
    self._spec_store = spec_store
    self._presenter = presenter
    self._service_factory = service_factory
    self._serve = serve

  def run(self) -> None:
    self.build()()

  def build(self) -> click.Group:
    cli = click.Group(help='Serve and inspect SQL-backed endpoints.')
    endpoints = click.Group('endpoints', help='Inspect declared endpoints.')
    cli.add_command(endpoints)

    @cli.command('serve')
    @click.option('--host', default='0.0.0.0', help='Bind address')
    @click.option('--port', default=3001, type=int, help='Bind port')
    def serve(host: str, port: int) -> None:
      """Start the HTTP server."""
      if self._serve is None:
        raise click.ClickException('Serving is not available in this context')
      self._serve(host, port)

    @endpoints.command('list')
    def list_endpoints() -> None:
      """List endpoints in resolution order."""
      for index, spec in enumerate(self._load().specs, start=1):
        flags = ' [token]' if spec.require_token else ''
        click.echo(f'{index:>3}. {spec.method.value:<6} {spec.url}  ({spec.name}, {spec.status.value}){flags}')

    @endpoints.command('check')
    def check_endpoints() -> None:
      """Report route captures and SQL binds for every endpoint."""
      problems = 0
      for spec in self._load().specs:
        click.echo(f'{spec.identifier()}  ({spec.name})')
        matcher = compile_route(spec.url)
        if not spec.is_routable:
          click.echo('  ! url does not start with /api/ and will never match')
          problems += 1
        elif matcher.regex is None:
          click.echo('  ! url template does not compile and will never match')
          problems += 1

        for name in url_placeholders(spec.url):
          kind = 'required' if is_structurally_required(spec.url, name) else 'optional'
          click.echo(f'  path {{{name}}}: {kind}')

        if not spec.has_query and not spec.has_procedure:
          click.echo('  ! no SQL query or procedure configured')
          problems += 1
        try:
          if spec.has_procedure:
            click.echo(f'  procedure: {_describe(extract_parameters(normalize_procedure_body(spec.sql_procedure)))}')
          if spec.has_query:
            click.echo(f'  query: {_describe(extract_parameters(spec.sql_query))}')
        except SqlGateError as exc:
          click.echo(f'  ! {exc.message}')
          problems += 1

      if problems:
        raise click.ClickException(f'{problems} problem(s) found')

    @cli.command('match')
    @click.argument('method')
    @click.argument('path')
    def match(method: str, path: str) -> None:
      """Show which endpoint a request would resolve to."""
      found = self._load().resolve(method, path)
      if found is None:
        raise click.ClickException(f'No endpoint matches {method.upper()} {path}')
      click.echo(f'{found.endpoint.name}: {found.endpoint.identifier()}')
      for name, value in found.path_params.items():
        click.echo(f'  {name} = {value}')

    @cli.command('call')
    @click.argument('method')
    @click.argument('path')
    @click.option('--param', '-p', 'params', multiple=True, help='Query parameter as name=value')
    @click.option('--body', default=None, help='JSON request body')
    @click.option('--token', default=None, help='Bearer token')
    def call(method: str, path: str, params: Tuple[str, ...], body: Optional[str], token: Optional[str]) -> None:
      """Execute a declared endpoint against the configured database."""
      headers: Dict[str, str] = {}
      if token:
        headers['Authorization'] = f'Bearer {token}'
      try:
        parsed_body = json.loads(body) if body else None
      except json.JSONDecodeError as exc:
        raise click.ClickException(f'--body is not valid JSON: {exc}')

      command = EndpointRequest(
        method=method.upper(),
        path=path,
        query=_parse_params(params),
        body=parsed_body,
        headers=headers,
      )
      result = self._service_factory().handle(command)
      click.echo(self._presenter.present(result))
      if not result.success:
        raise click.exceptions.Exit(1)

    return cli

  def _load(self) -> EndpointRegistry:
    try:
      return EndpointRegistry.load(self._spec_store)
    except SqlGateError as exc:
      raise click.ClickException(exc.message)


def _describe(params) -> str:
  parts = []
  if params.path_params:
    parts.append('path=' + ','.join(params.path_params))
  if params.query_params:
    parts.append('query=' + ','.join(params.query_params))
  if params.output_params:
    parts.append('output=' + ','.join(params.output_params))
  if params.dollar_param:
    parts.append(f'payload=${params.dollar_param}')
  return ' '.join(parts) or 'no parameters'


def _parse_params(params: Tuple[str, ...]) -> Dict[str, str]:
  parsed: Dict[str, str] = {}
  for item in params:
    if '=' not in item:
      raise click.ClickException(f'Invalid --param {item!r}, expected name=value')
    name, value = item.split('=', 1)
    parsed[name] = value
  return parsed
