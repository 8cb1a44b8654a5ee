"""apiconsole command line.

Browse an OpenAPI/Swagger document and call its operations with the right
authentication applied.

Example:
    $ apiconsole --spec petstore.yaml endpoints
    $ apiconsole --spec petstore.yaml auth set api_key --value abc123
    $ apiconsole --spec petstore.yaml call GET /pets/{petId} -p petId=1
    $ apiconsole --spec petstore.yaml call GET /pets/{petId} --replay
"""

import json
import logging
import random
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urljoin

import typer
from rich.console import Console
from rich.table import Table

from .core.config import ConsoleConfig, load_config
from .core.errors import ApiConsoleError, ConfigError, InvalidCredentialError, TransportError
from .core.logging import configure_logging
from .core.models import Credential, RequestForm, TransportResponse
from .core.storage import CredentialStore, HistoryStore, TokenStore, endpoint_key
from .execution import RequestOrchestrator, RequestsTransport, prefill_form
from .openapi import ExampleGenerator, ExampleMode, OpenAPISpec, requires_auth
from .openapi.models import EndpointInfo, SchemeKind
from .version import __version__

app = typer.Typer(
    name="apiconsole",
    help="apiconsole - browse and call OpenAPI operations",
    no_args_is_help=True,
)
auth_app = typer.Typer(help="Manage stored credentials per security scheme", no_args_is_help=True)
token_app = typer.Typer(help="Manage the legacy global bearer token", no_args_is_help=True)
app.add_typer(auth_app, name="auth")
app.add_typer(token_app, name="token")

console = Console()


class State:
    """Options shared by every command (set by the app callback)."""

    spec_source: Optional[str] = None
    config_file: Optional[Path] = None
    base_url: Optional[str] = None


state = State()


@app.callback()
def main(
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="OpenAPI document (file path or URL)"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./apiconsole.yaml)"
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the API base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """apiconsole - browse and call OpenAPI operations."""
    configure_logging(level=logging.DEBUG if verbose else logging.WARNING)
    state.spec_source = spec
    state.config_file = config_file
    state.base_url = base_url


# ============================================================================
# Helpers
# ============================================================================


def _config() -> ConsoleConfig:
    return load_config(
        state.config_file,
        overrides={"spec_source": state.spec_source, "base_url": state.base_url},
    )


def _spec(config: ConsoleConfig) -> OpenAPISpec:
    if not config.spec_source:
        raise ConfigError(
            "No OpenAPI document given. Use --spec or set spec_source / APICONSOLE_SPEC."
        )
    return OpenAPISpec.load(config.spec_source, timeout=config.timeout)


def _resolve_base_url(config: ConsoleConfig, spec: OpenAPISpec) -> ConsoleConfig:
    """Fill base_url from the document's first server when not configured."""
    if config.base_url:
        return config
    server_url = spec.get_base_url()
    if not server_url:
        return config
    source = config.spec_source or ""
    if source.startswith(("http://", "https://")):
        server_url = urljoin(source, server_url)
    return config.model_copy(update={"base_url": server_url.rstrip("/")})


def _endpoint(spec: OpenAPISpec, method: str, path: str) -> EndpointInfo:
    endpoint = spec.get_endpoint(path, method)
    if endpoint is None:
        raise ConfigError(f"Operation {method.upper()} {path} not found in document")
    return endpoint


def _parse_pairs(values: Optional[list[str]], option: str) -> dict[str, str]:
    pairs = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got '{item}'", param_hint=option)
        pairs[name] = value
    return pairs


def _read_body(body: Optional[str], body_file: Optional[Path]) -> Any:
    if body is not None and body_file is not None:
        raise typer.BadParameter("Use either --body or --body-file, not both")
    text = body
    if body_file is not None:
        try:
            text = body_file.read_text(encoding="utf-8")
        except OSError as e:
            raise typer.BadParameter(f"Cannot read {body_file}: {e}") from e
    if text is None or not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON in request body: {e}") from e


def _fail(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")
    raise typer.Exit(1)


def _print_response(response: TransportResponse) -> None:
    color = "green" if response.success else "red"
    console.print(f"[bold {color}]{response.status} {response.status_text}[/bold {color}]")
    if isinstance(response.data, (dict, list)):
        typer.echo(json.dumps(response.data, indent=2))
    elif response.data is not None:
        typer.echo(str(response.data))


# ============================================================================
# Browsing
# ============================================================================


@app.command()
def info():
    """Show the document's title, version and servers."""
    try:
        config = _config()
        api_info = _spec(config).get_info()
    except ApiConsoleError as e:
        _fail(str(e))

    console.print(f"[bold]{api_info.title}[/bold] v{api_info.version}")
    console.print(f"Spec version: {api_info.spec_version}")
    if api_info.description:
        console.print(api_info.description)
    for server in api_info.servers:
        description = f" - {server['description']}" if server.get("description") else ""
        console.print(f"  [cyan]{server.get('url')}[/cyan]{description}")


@app.command()
def endpoints():
    """List operations grouped by tag."""
    try:
        config = _config()
        spec = _spec(config)
    except ApiConsoleError as e:
        _fail(str(e))

    global_security = spec.get_global_security()
    grouped = spec.group_endpoints_by_tag()
    if not grouped:
        console.print("[yellow]No operations found in document[/yellow]")
        return

    for tag, tag_endpoints in grouped.items():
        table = Table(title=tag, show_header=True)
        table.add_column("Method", style="cyan")
        table.add_column("Path", style="white")
        table.add_column("Summary")
        table.add_column("Auth")
        for endpoint in tag_endpoints:
            table.add_row(
                endpoint.method,
                endpoint.path,
                endpoint.summary or "",
                "yes" if requires_auth(endpoint, global_security) else "",
            )
        console.print(table)


@app.command()
def schemes():
    """List the document's security schemes."""
    try:
        config = _config()
        registry = _spec(config).get_security_schemes()
    except ApiConsoleError as e:
        _fail(str(e))

    if not registry:
        console.print("No security schemes declared")
        return

    table = Table(title="Security Schemes")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Details")
    for scheme in registry.values():
        if scheme.kind is SchemeKind.API_KEY:
            details = f"{scheme.parameter_name} in {scheme.location}"
        elif scheme.kind is SchemeKind.HTTP:
            details = scheme.http_scheme or ""
            if scheme.bearer_format:
                details += f" ({scheme.bearer_format})"
        elif scheme.kind is SchemeKind.OAUTH2:
            flows = ", ".join(flow.value for flow in scheme.flows)
            scopes = ", ".join(s.scope for s in scheme.scopes)
            details = f"flows: {flows}; scopes: {scopes or '-'}"
        elif scheme.kind is SchemeKind.OPENID_CONNECT:
            details = scheme.open_id_connect_url or ""
        else:
            details = f"[yellow]not supported ({scheme.raw_type})[/yellow]"
        table.add_row(scheme.name, scheme.kind.value, details)
    console.print(table)


@app.command()
def example(
    method: str = typer.Argument(..., help="HTTP method"),
    path: str = typer.Argument(..., help="Path template, e.g. /pets/{petId}"),
    mode: Optional[ExampleMode] = typer.Option(
        None, help="Optional properties: random, all or required"
    ),
    seed: Optional[int] = typer.Option(None, help="Seed for random mode"),
    strict: bool = typer.Option(False, "--strict", help="Fail on unresolved $ref pointers"),
):
    """Print a synthesized example request body."""
    try:
        config = _config()
        spec = _spec(config)
        endpoint = _endpoint(spec, method, path)
    except ApiConsoleError as e:
        _fail(str(e))

    if endpoint.request_body_schema is None:
        console.print(f"{endpoint.method} {endpoint.path} takes no request body")
        return

    generator = ExampleGenerator(
        spec.get_schema_registry(),
        mode=mode or config.example_mode,
        rng=random.Random(seed) if seed is not None else None,
        strict=strict,
    )
    try:
        value = generator.generate(endpoint.request_body_schema)
    except ApiConsoleError as e:
        _fail(str(e))
    typer.echo(json.dumps(value, indent=2))


# ============================================================================
# Calling
# ============================================================================


@app.command()
def call(
    method: str = typer.Argument(..., help="HTTP method"),
    path: str = typer.Argument(..., help="Path template, e.g. /pets/{petId}"),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-p", help="Path parameter name=value (repeatable)"
    ),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-q", help="Query parameter name=value (repeatable)"
    ),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="JSON request body"),
    body_file: Optional[Path] = typer.Option(None, help="File holding the JSON request body"),
    replay: bool = typer.Option(
        False, "--replay", help="Start from the latest recorded request for this operation"
    ),
):
    """Call an operation and record it in history."""
    path_params = _parse_pairs(param, "--param")
    query_params = _parse_pairs(query, "--query")
    request_body = _read_body(body, body_file)

    token_store = None
    stored_token = None
    try:
        config = _config()
        spec = _spec(config)
        endpoint = _endpoint(spec, method, path)
        config = _resolve_base_url(config, spec)

        token_store = TokenStore(config.token_path)
        if not config.auth_token:
            stored_token = token_store.get()
            config = config.model_copy(update={"auth_token": stored_token})

        history = HistoryStore(config.history_path)
        if replay:
            generator = ExampleGenerator(spec.get_schema_registry(), mode=config.example_mode)
            form = prefill_form(endpoint, history, generator)
        else:
            form = RequestForm()
        form.path_params.update(path_params)
        form.query_params.update(query_params)
        if request_body is not None:
            form.body = request_body

        orchestrator = RequestOrchestrator.from_spec(
            spec,
            config,
            RequestsTransport(timeout=config.timeout),
            credentials=CredentialStore(config.credentials_path).load(),
        )
        prepared = orchestrator.build_request(endpoint, form)
        for warning in prepared.auth.warnings:
            console.print(f"[yellow]![/yellow] {warning}")
        if prepared.requires_auth and not prepared.auth.applied and not prepared.used_legacy_token:
            console.print("[yellow]![/yellow] Operation requires authentication; none applied")

        response = orchestrator.send(endpoint, prepared, history=history)
    except TransportError as e:
        if e.status == 401 and stored_token and token_store is not None:
            token_store.clear()
            console.print("[yellow]![/yellow] Stored token rejected (401); cleared it")
        if e.response is not None:
            _print_response(e.response)
        _fail(str(e))
    except ApiConsoleError as e:
        _fail(str(e))

    _print_response(response)


@app.command()
def history(
    method: str = typer.Argument(..., help="HTTP method"),
    path: str = typer.Argument(..., help="Path template"),
):
    """Show recent calls for an operation."""
    try:
        config = _config()
        endpoint_history = HistoryStore(config.history_path).get(endpoint_key(path, method))
    except ApiConsoleError as e:
        _fail(str(e))

    if not endpoint_history.history:
        console.print("No request history")
        return

    table = Table(title=f"History: {method.upper()} {path}")
    table.add_column("Time", style="dim")
    table.add_column("Request")
    table.add_column("Status")
    for entry in endpoint_history.history:
        status = entry.response.status
        color = "green" if entry.response.success else "red"
        table.add_row(
            entry.timestamp.isoformat(timespec="seconds"),
            f"{entry.request.method} {entry.request.path}",
            f"[{color}]{status} {entry.response.status_text}[/{color}]",
        )
    console.print(table)


# ============================================================================
# Credentials
# ============================================================================


@auth_app.command("set")
def auth_set(
    scheme: str = typer.Argument(..., help="Security scheme name"),
    value: Optional[str] = typer.Option(None, help="API key value"),
    username: Optional[str] = typer.Option(None, help="HTTP basic/digest username"),
    password: Optional[str] = typer.Option(None, help="HTTP basic/digest password"),
    token: Optional[str] = typer.Option(None, help="HTTP bearer token"),
    access_token: Optional[str] = typer.Option(None, help="OAuth2/OpenID Connect access token"),
):
    """Store a credential for a security scheme."""
    credential = Credential(
        value=value,
        username=username,
        password=password,
        token=token,
        access_token=access_token,
    )
    try:
        config = _config()
        registry = _spec(config).get_security_schemes()
        if scheme not in registry:
            raise ConfigError(f"Security scheme '{scheme}' is not declared in the document")
        CredentialStore(config.credentials_path).set(scheme, credential, registry)
    except InvalidCredentialError as e:
        for name, messages in e.errors.items():
            for message in messages:
                console.print(f"[red]{name}[/red]: {message}")
        raise typer.Exit(1)
    except ApiConsoleError as e:
        _fail(str(e))

    console.print(f"[bold green]✓[/bold green] Saved credential for '{scheme}'")


@auth_app.command("clear")
def auth_clear(scheme: str = typer.Argument(..., help="Security scheme name")):
    """Remove a stored credential."""
    try:
        removed = CredentialStore(_config().credentials_path).clear(scheme)
    except ApiConsoleError as e:
        _fail(str(e))
    if removed:
        console.print(f"Removed credential for '{scheme}'")
    else:
        console.print(f"No credential stored for '{scheme}'")


@auth_app.command("list")
def auth_list():
    """Show which schemes have stored credentials."""
    try:
        config = _config()
        registry = _spec(config).get_security_schemes()
        credentials = CredentialStore(config.credentials_path).load()
    except ApiConsoleError as e:
        _fail(str(e))

    table = Table(title="Credentials")
    table.add_column("Scheme", style="cyan")
    table.add_column("Type")
    table.add_column("Stored")
    for name in list(registry) + [n for n in credentials if n not in registry]:
        scheme = registry.get(name)
        stored = credentials.get(name)
        table.add_row(
            name,
            scheme.kind.value if scheme else "[yellow]undeclared[/yellow]",
            "yes" if stored is not None and stored.has_data() else "",
        )
    console.print(table)


@token_app.command("set")
def token_set(token: str = typer.Argument(..., help="Bearer token")):
    """Store the legacy global bearer token."""
    try:
        TokenStore(_config().token_path).set(token)
    except ApiConsoleError as e:
        _fail(str(e))
    console.print("[bold green]✓[/bold green] Token saved")


@token_app.command("clear")
def token_clear():
    """Remove the legacy global bearer token."""
    try:
        TokenStore(_config().token_path).clear()
    except ApiConsoleError as e:
        _fail(str(e))
    console.print("Token cleared")


@app.command()
def version():
    """Show the apiconsole version."""
    typer.echo(__version__)


if __name__ == "__main__":
    app()
