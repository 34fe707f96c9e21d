#!/usr/bin/env python3
"""
formrelay CLI - contact form capture, relay settings and servers
"""
import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from formrelay.config.client_store import DEFAULT_STORE_PATH, ClientConfigStore
from formrelay.exceptions import ConfigurationError, FormRelayError, SubmissionValidationError
from formrelay.models import SHEET_HEADERS
from formrelay.relay import SubmissionRelay
from formrelay.version import __version__

console = Console()


def show_version_info():
    """Display detailed version information"""
    import platform

    console.print(f"\n[bold cyan]formrelay Version Information[/bold cyan]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", platform.python_version())

    console.print(table)
    console.print()


def version_callback(ctx, param, value):
    """Callback for --version option"""
    if not value or ctx.resilient_parsing:
        return
    show_version_info()
    ctx.exit()


def _store(ctx: click.Context) -> ClientConfigStore:
    return ClientConfigStore(ctx.obj["store_path"])


@click.group()
@click.option(
    '--version', '-v',
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help='Show detailed version information'
)
@click.option(
    "--store",
    type=click.Path(dir_okay=False),
    envvar="FORMRELAY_CLIENT_CONFIG",
    default=str(DEFAULT_STORE_PATH),
    show_default=True,
    help="Client configuration file",
)
@click.pass_context
def main(ctx, store):
    """formrelay - Contact form relay to a spreadsheet"""
    ctx.ensure_object(dict)
    ctx.obj["store_path"] = Path(store)


@main.command()
def version():
    """Show version information"""
    show_version_info()


@main.command()
@click.option("--name", "-n", help="Your name")
@click.option("--email", "-e", help="Your email address")
@click.option("--phone", default="", help="Phone number (optional)")
@click.option("--company", default="", help="Company (optional)")
@click.option("--message", "-m", help="Message")
@click.pass_context
def submit(ctx, name, email, phone, company, message):
    """Submit the contact form"""
    # 未入力の必須項目はプロンプトで入力させる
    name = name or click.prompt("Name")
    email = email or click.prompt("Email")
    message = message or click.prompt("Message")

    data = {
        "name": name,
        "email": email,
        "phone": phone,
        "company": company,
        "message": message,
    }

    config = asyncio.run(_store(ctx).load())
    relay = SubmissionRelay(config)

    try:
        with console.status("[cyan]Sending...[/cyan]"):
            result = asyncio.run(relay.submit(data))
    except SubmissionValidationError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")
        console.print("Run [bold]formrelay config set --script-url URL[/bold] first")
        sys.exit(1)

    if not result.success:
        console.print(f"[red]✗ {result.message}[/red]")
        for error in result.errors or []:
            console.print(f"  [dim]{error}[/dim]")
        sys.exit(1)

    console.print("[green]✓ Thank you! Your message has been sent.[/green]")
    if result.assumed:
        console.print(
            f"[yellow]⚠ Sent via {result.transport}; the destination did not confirm receipt[/yellow]"
        )
    else:
        console.print(f"[dim]Delivered via {result.transport}[/dim]")


@main.group()
def config():
    """Manage relay settings"""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Show the current relay settings"""
    store = _store(ctx)
    current = asyncio.run(store.load())

    table = Table(title=f"Relay settings ({store.path})")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("scriptUrl", current.script_url or "[dim](not set)[/dim]")
    table.add_row("serverUrl", current.server_url or "[dim](not set)[/dim]")
    table.add_row("useServer", str(current.use_server).lower())
    console.print(table)


@config.command("set")
@click.option("--script-url", help="Destination (spreadsheet handler) URL")
@click.option("--server-url", help="Proxy server base URL")
@click.option("--use-server/--no-use-server", default=None, help="Send through the proxy first")
@click.pass_context
def config_set(ctx, script_url: Optional[str], server_url: Optional[str], use_server: Optional[bool]):
    """Update relay settings"""
    values = {}
    if script_url is not None:
        values["script_url"] = script_url
    if server_url is not None:
        values["server_url"] = server_url
    if use_server is not None:
        values["use_server"] = use_server

    if not values:
        console.print("[yellow]Nothing to update[/yellow]")
        sys.exit(1)

    updated = asyncio.run(_store(ctx).update(**values))
    console.print("[green]✓ Settings saved[/green]")
    if updated.use_server and not updated.server_url:
        console.print("[yellow]⚠ useServer is on but no serverUrl is set[/yellow]")


@config.command("clear")
@click.confirmation_option(prompt="Remove saved relay settings?")
@click.pass_context
def config_clear(ctx):
    """Remove saved relay settings"""
    asyncio.run(_store(ctx).clear())
    console.print("[green]✓ Settings cleared[/green]")


@config.command("test")
@click.pass_context
def config_test(ctx):
    """Test connectivity to the configured destination"""
    current = asyncio.run(_store(ctx).load())
    relay = SubmissionRelay(current)

    try:
        with console.status("[cyan]Testing connection...[/cyan]"):
            check = asyncio.run(relay.test_connection())
    except ConfigurationError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")
        sys.exit(1)

    if check.success:
        console.print(f"[green]✓ Connection OK via {check.via} ({check.status} {check.status_text})[/green]")
        if check.data is not None:
            console.print(check.data)
    else:
        detail = check.error or f"{check.status} {check.status_text}"
        console.print(f"[red]✗ Connection failed via {check.via}: {detail}[/red]")
        sys.exit(1)


@main.command()
@click.option("--config-file", "-c", type=click.Path(exists=True, dir_okay=False), help="YAML settings file")
@click.option("--host", default=None, help="Bind host")
@click.option("--port", "-p", type=int, default=None, help="Bind port")
def serve(config_file, host, port):
    """Run the proxy server"""
    import uvicorn

    from formrelay.api.app import create_app
    from formrelay.config.settings import load_settings

    try:
        settings = load_settings(Path(config_file) if config_file else None)
    except FormRelayError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    if host:
        settings.host = host
    if port:
        settings.port = port

    console.print(f"[bold cyan]formrelay proxy[/bold cyan] on http://{settings.host}:{settings.port}")
    console.print(f"  Environment: {settings.environment}")
    console.print(f"  Destination: {settings.google_script_url or '[yellow](not configured)[/yellow]'}")
    if settings.is_development:
        console.print(f"  Health: http://localhost:{settings.port}/health")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.logging.level.lower(),
    )


@main.group()
def sheet():
    """Local spreadsheet append handler"""
    pass


@sheet.command("serve")
@click.option("--file", "-f", "sheet_file", envvar="FORMRELAY_SHEET_FILE", default="submissions.csv", show_default=True, help="CSV sheet file")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind host")
@click.option("--port", "-p", type=int, default=8080, show_default=True, help="Bind port")
def sheet_serve(sheet_file, host, port):
    """Run the spreadsheet handler backed by a CSV file"""
    import uvicorn

    from formrelay.sheet import CsvSheetBackend, create_sheet_app

    console.print(f"[bold cyan]formrelay sheet handler[/bold cyan] on http://{host}:{port}")
    console.print(f"  Sheet file: {sheet_file}")
    uvicorn.run(create_sheet_app(CsvSheetBackend(sheet_file)), host=host, port=port)


@sheet.command("setup")
@click.option("--file", "-f", "sheet_file", envvar="FORMRELAY_SHEET_FILE", default="submissions.csv", show_default=True, help="CSV sheet file")
@click.confirmation_option(prompt="This clears the sheet. Continue?")
def sheet_setup(sheet_file):
    """Clear the sheet and write the header row"""
    from formrelay.sheet import CsvSheetBackend

    asyncio.run(CsvSheetBackend(sheet_file).setup())
    console.print(f"[green]✓ Sheet initialized: {sheet_file}[/green]")


@sheet.command("rows")
@click.option("--file", "-f", "sheet_file", envvar="FORMRELAY_SHEET_FILE", default="submissions.csv", show_default=True, help="CSV sheet file")
def sheet_rows(sheet_file):
    """Show rows stored in the sheet"""
    from formrelay.sheet import CsvSheetBackend

    rows = asyncio.run(CsvSheetBackend(sheet_file).rows())
    if len(rows) <= 1:
        console.print("[yellow]No submissions yet[/yellow]")
        return

    table = Table(title=sheet_file)
    for header in SHEET_HEADERS:
        table.add_column(header)
    for row in rows[1:]:
        table.add_row(*row)
    console.print(table)


if __name__ == "__main__":
    main()
