"""
CLI tool for running and inspecting the chat relay.

Provides commands for starting the server and viewing its effective
configuration and wire protocol.
"""

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chat_relay.schemas.events import EventKind
from chat_relay.settings import app_settings
from chat_relay.uvicorn_filters import uvicorn_log_config

# Event kinds clients may send; "users" is only ever broadcast
INBOUND_KINDS = {
    EventKind.REGISTER,
    EventKind.MESSAGE,
    EventKind.REACTION,
    EventKind.READ_RECEIPT,
}

typer_app = typer.Typer(
    name="relay-cli",
    help="Chat relay CLI - Run the relay and inspect its configuration",
    add_completion=False,
)
console = Console()


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option(
        None, "--host", help="Bind address (defaults to HOST)"
    ),
    port: int = typer.Option(
        None, "--port", "-p", help="Port to listen on (defaults to PORT)"
    ),
    reload: bool = typer.Option(
        False, "--reload", help="Restart on code changes (development only)"
    ),
):
    """
    Start the relay server.

    Example:
        python cli.py serve
        PORT=9000 python cli.py serve
    """
    host = host or app_settings.HOST
    port = port or app_settings.PORT

    console.print(
        Panel.fit(
            f"[bold cyan]Chat relay[/bold cyan] on "
            f"[yellow]ws://{host}:{port}{app_settings.WS_PATH}[/yellow]",
            border_style="cyan",
        )
    )

    uvicorn.run(
        "chat_relay:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=uvicorn_log_config(),
    )


@typer_app.command(name="settings")
def show_settings():
    """
    Display the effective configuration read from the environment.

    Example:
        LIVENESS_SWEEP_INTERVAL_SECONDS=1 python cli.py settings
    """
    table = Table("Setting", "Value", title="Relay settings", show_lines=True)
    for name, value in app_settings.model_dump().items():
        table.add_row(f"[green]{name}[/green]", str(value))

    console.print()
    console.print(table)
    console.print()


@typer_app.command(name="event-kinds")
def event_kinds():
    """
    Display the event kinds of the wire protocol and their direction.

    Example:
        python cli.py event-kinds
    """
    table = Table(
        "messageType",
        "Inbound",
        "Broadcast",
        title="Relay event kinds",
        show_lines=True,
    )
    for kind in EventKind:
        table.add_row(
            f"[yellow]{kind.value}[/yellow]",
            "[green]yes[/green]" if kind in INBOUND_KINDS else "[dim]no[/dim]",
            "[green]yes[/green]",
        )

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":
    typer_app()
