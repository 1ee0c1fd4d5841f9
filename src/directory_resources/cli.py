"""CLI interface for directory resources."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .apply import ApplyEngine, ApplyResult, DesiredDocument
from .config import AppConfig, load_config
from .errors import DirectoryError
from .logging_utils import create_file_handler, generate_run_id
from .resources import ResourceData

app = typer.Typer(
    name="directory-resources",
    help="Manage directory applications, groups and users from a YAML document",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print raw attributes as JSON"),
]


def get_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from file and environment."""
    try:
        return load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None


def setup_logging(config: AppConfig, verbose: bool = False, log_file: bool = True) -> None:
    """Configure logging for CLI, optionally with a persistent redacted log file."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if log_file:
        handler = create_file_handler(
            generate_run_id(),
            secrets=(config.graph.client_secret, config.graph.access_token),
        )
        root = logging.getLogger()
        root.addHandler(handler)
        # The file captures debug output even when the console stays quiet
        root.setLevel(logging.DEBUG)
        for h in root.handlers:
            if h is not handler:
                h.setLevel(level)


def fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1) from None


def print_result(result: ApplyResult, title: str) -> None:
    """Print a summary table for an apply, refresh or destroy run."""
    table = Table(title=title)
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", style="green")
    table.add_column("Resources", style="dim")

    for outcome in ("created", "updated", "deleted", "unchanged", "removed", "skipped"):
        addresses = getattr(result, outcome)
        if addresses:
            table.add_row(outcome.title(), str(len(addresses)), ", ".join(addresses))
    console.print(table)

    for address, message in result.errors.items():
        console.print(f"[red]✗ {address}: {escape(message)}[/red]")

    console.print(f"[dim]Completed in {result.duration_seconds:.1f}s[/dim]")


def print_attributes(data: ResourceData, as_json: bool, title: str) -> None:
    if as_json:
        console.print_json(json.dumps({"id": data.id, **data.attributes}, default=str))
        return

    table = Table(title=title)
    table.add_column("Attribute", style="cyan")
    table.add_column("Value")
    table.add_row("id", data.id)
    for key, value in data.attributes.items():
        if isinstance(value, (list, dict)):
            value = json.dumps(value, default=str)
        table.add_row(key, str(value))
    console.print(table)


def read_data_source(config: AppConfig, source_type: str, attributes: dict[str, Any]) -> ResourceData:
    engine = ApplyEngine(config)
    try:
        return engine.read_data_source(source_type, attributes)
    except DirectoryError as e:
        fail(e)
    finally:
        engine.close()


@app.command()
def apply(
    document_path: Annotated[
        Path,
        typer.Argument(help="YAML document declaring the desired resources"),
    ],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    parallelism: Annotated[
        int | None,
        typer.Option("--parallelism", "-p", help="Concurrent resource operations"),
    ] = None,
    state_file: Annotated[
        Path | None,
        typer.Option("--state", help="State file (overrides configuration)"),
    ] = None,
) -> None:
    """Create, update and delete resources to match a document."""
    config = get_config(config_path)
    if parallelism is not None:
        config.provider.parallelism = parallelism
    setup_logging(config, verbose)

    try:
        document = DesiredDocument.from_yaml(document_path)
    except DirectoryError as e:
        fail(e)

    engine = ApplyEngine(config, state_path=state_file)
    try:
        with console.status(f"[bold]Applying {len(document.resources)} resource(s)...[/bold]"):
            result = engine.apply(document)
    except DirectoryError as e:
        fail(e)
    finally:
        engine.close()

    print_result(result, "Apply")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def refresh(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    state_file: Annotated[
        Path | None,
        typer.Option("--state", help="State file (overrides configuration)"),
    ] = None,
) -> None:
    """Re-read every tracked resource, dropping the ones deleted out of band."""
    config = get_config(config_path)
    setup_logging(config, verbose)

    engine = ApplyEngine(config, state_path=state_file)
    try:
        result = engine.refresh()
    finally:
        engine.close()

    print_result(result, "Refresh")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def destroy(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip the confirmation prompt"),
    ] = False,
    state_file: Annotated[
        Path | None,
        typer.Option("--state", help="State file (overrides configuration)"),
    ] = None,
) -> None:
    """Delete every tracked resource."""
    config = get_config(config_path)
    setup_logging(config, verbose)

    engine = ApplyEngine(config, state_path=state_file)
    try:
        tracked = engine.tracked()
        if not tracked:
            console.print("[dim]No resources tracked.[/dim]")
            return
        if not force:
            typer.confirm(f"Delete {len(tracked)} resource(s)?", abort=True)
        result = engine.destroy()
    finally:
        engine.close()

    print_result(result, "Destroy")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def status(
    config_path: ConfigOption = None,
    state_file: Annotated[
        Path | None,
        typer.Option("--state", help="State file (overrides configuration)"),
    ] = None,
) -> None:
    """Show resources tracked in the state file."""
    config = get_config(config_path)
    engine = ApplyEngine(config, state_path=state_file)

    console.print(f"[bold]State File:[/bold] {engine.state_path}")
    console.print(f"[bold]Last Modified:[/bold] {engine.state.last_modified.isoformat()}\n")

    tracked = engine.tracked()
    if not tracked:
        console.print("[dim]No resources tracked yet.[/dim]")
        return

    table = Table(title="Tracked Resources")
    table.add_column("Address", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Depends On", style="blue")
    table.add_column("Last Refresh", style="green")

    for entry in tracked:
        table.add_row(
            entry.address,
            entry.id,
            ", ".join(entry.dependencies) or "-",
            entry.last_refresh.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


@app.command()
def domains(
    config_path: ConfigOption = None,
    include_unverified: Annotated[
        bool, typer.Option("--include-unverified", help="Include unverified domains")
    ] = False,
    only_default: Annotated[bool, typer.Option("--only-default", help="Only the default domain")] = False,
    only_initial: Annotated[bool, typer.Option("--only-initial", help="Only the initial domain")] = False,
    as_json: JsonOption = False,
) -> None:
    """List the tenant's domains."""
    config = get_config(config_path)
    data = read_data_source(
        config,
        "domains",
        {
            "include_unverified": include_unverified,
            "only_default": only_default,
            "only_initial": only_initial,
        },
    )

    if as_json:
        print_attributes(data, True, "Domains")
        return

    table = Table(title=f"Domains ({data.id})")
    table.add_column("Domain", style="cyan")
    table.add_column("Authentication")
    table.add_column("Default")
    table.add_column("Initial")
    table.add_column("Verified")
    for domain in data.attributes["domains"]:
        table.add_row(
            domain["domain_name"],
            domain["authentication_type"],
            "✓" if domain["is_default"] else "",
            "✓" if domain["is_initial"] else "",
            "✓" if domain["is_verified"] else "",
        )
    console.print(table)


@app.command()
def users(
    config_path: ConfigOption = None,
    object_id: Annotated[
        list[str] | None, typer.Option("--object-id", help="Look up by object ID (repeatable)")
    ] = None,
    upn: Annotated[
        list[str] | None, typer.Option("--upn", help="Look up by user principal name (repeatable)")
    ] = None,
    mail_nickname: Annotated[
        list[str] | None,
        typer.Option("--mail-nickname", help="Look up by mail nickname (repeatable)"),
    ] = None,
    ignore_missing: Annotated[
        bool, typer.Option("--ignore-missing", help="Skip users that do not exist")
    ] = False,
    as_json: JsonOption = False,
) -> None:
    """Look up users."""
    config = get_config(config_path)
    data = read_data_source(
        config,
        "users",
        {
            "object_ids": object_id or None,
            "user_principal_names": upn or None,
            "mail_nicknames": mail_nickname or None,
            "ignore_missing": ignore_missing,
        },
    )

    if as_json:
        print_attributes(data, True, "Users")
        return

    table = Table(title="Users")
    table.add_column("Object ID", style="dim")
    table.add_column("User Principal Name", style="cyan")
    table.add_column("Display Name")
    table.add_column("Enabled")
    for user in data.attributes["users"]:
        table.add_row(
            user["object_id"],
            user["user_principal_name"],
            user["display_name"],
            "✓" if user["account_enabled"] else "✗",
        )
    console.print(table)


@app.command()
def application(
    config_path: ConfigOption = None,
    object_id: Annotated[str | None, typer.Option("--object-id", help="Application object ID")] = None,
    application_id: Annotated[
        str | None, typer.Option("--application-id", help="Application (client) ID")
    ] = None,
    display_name: Annotated[str | None, typer.Option("--display-name", help="Display name")] = None,
    as_json: JsonOption = False,
) -> None:
    """Show a single application registration."""
    config = get_config(config_path)
    data = read_data_source(
        config,
        "application",
        {
            "object_id": object_id,
            "application_id": application_id,
            "display_name": display_name,
        },
    )
    print_attributes(data, as_json, "Application")


@app.command()
def client_config(
    config_path: ConfigOption = None,
    as_json: JsonOption = False,
) -> None:
    """Show the tenant, client and object ID of the authenticated principal."""
    config = get_config(config_path)
    data = read_data_source(config, "client_config", {})
    print_attributes(data, as_json, "Client Configuration")


@app.command()
def config_show(
    config_path: ConfigOption = None,
) -> None:
    """Show current configuration (with secrets masked)."""
    config = get_config(config_path)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("API Base URL", config.graph.base_url)
    table.add_row("Tenant ID", config.graph.tenant_id or "[dim]Not set[/dim]")
    table.add_row("Client ID", config.graph.client_id or "[dim]Not set[/dim]")
    secret = config.graph.client_secret
    table.add_row("Client Secret", f"{secret[:4]}..." if secret else "[red]Not set[/red]")
    token = config.graph.access_token
    table.add_row("Access Token", f"{token[:8]}..." if token else "[dim]Not set[/dim]")
    table.add_row("State File", str(config.provider.state_file))
    table.add_row("Parallelism", str(config.provider.parallelism))
    table.add_row(
        "Replication Wait",
        f"{config.provider.replication_max_attempts} attempts, "
        f"{config.provider.replication_initial_delay}s to {config.provider.replication_max_delay}s",
    )

    console.print(table)


if __name__ == "__main__":
    app()
