"""Command-line interface for the throttling relay.

This module provides the main command-line interface for the relay, handling:
- Command-line and environment option parsing
- Option validation
- Logging setup
- Relay lifecycle and exit codes

Invalid options and a listen address that cannot be bound are fatal: the
command logs the problem and exits with status 1 before accepting anything.

Example:
    # Throttle client to server traffic to 10 bytes every 50ms:
    $ throttle-relay relay -l :8080 -u example.com:80 -s 10 -d 50 -r cs
"""

import typer
from loguru import logger
from rich.console import Console

from throttle_relay import __version__
from throttle_relay.cmd.info import show_relay_info
from throttle_relay.core.config import Direction, RelayConfig
from throttle_relay.core.exceptions import ConfigurationError
from throttle_relay.core.relay import run_relay
from throttle_relay.core.utils.log_config import configure_logging

console = Console()
app = typer.Typer(help="TCP relay that throttles traffic to simulate slow links")

DIRECTION_USAGE = (
    "Throttle direction: cs (client to server), sc (server to client), "
    "both (default) or none"
)


@app.callback(invoke_without_command=True)
def version_callback():
    """Show version information."""
    console.print(f"[cyan]Throttle Relay v{__version__}[/cyan]")


@app.command(name="relay")
def start_relay(
    listen: str = typer.Option(
        ..., "--listen", "-l", envvar="THROTTLE_RELAY_LISTEN", help="Listen address (host:port)"
    ),
    upstream: str = typer.Option(
        ..., "--upstream", "-u", envvar="THROTTLE_RELAY_UPSTREAM", help="Upstream address (host:port)"
    ),
    size: str = typer.Option(
        "1", "--size", "-s", envvar="THROTTLE_RELAY_SIZE", help="Number of bytes per TCP write when throttled"
    ),
    delay: str = typer.Option(
        "0", "--delay", "-d", envvar="THROTTLE_RELAY_DELAY", help="Delay in ms after each throttled write"
    ),
    direction: str = typer.Option(
        Direction.BOTH.value,
        "--direction",
        "-r",
        envvar="THROTTLE_RELAY_DIRECTION",
        help=DIRECTION_USAGE,
    ),
    drain_timeout: float | None = typer.Option(
        None,
        "--drain-timeout",
        help="Seconds to wait for active sessions on shutdown (default: until they finish)",
    ),
    debug: bool = typer.Option(
        default=False,
        help="Enable debug logging",
    ),
):
    """Start the throttling relay."""
    configure_logging(debug=debug)

    try:
        config = RelayConfig.from_options(
            size=size,
            delay=delay,
            listen=listen,
            upstream=upstream,
            direction=direction,
        )
    except ConfigurationError as e:
        logger.error(f"Invalid option: {e}")
        console.print(f"[red]Invalid option: {e}")
        raise typer.Exit(1) from None

    show_relay_info(config)

    try:
        run_relay(config, drain_timeout=drain_timeout)
    except OSError as e:
        logger.error(f"Cannot listen on {listen}: {e}")
        console.print(f"[red]Error: {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        logger.warning("Interrupted again, dropping active sessions")
        raise typer.Exit(130) from None


if __name__ == "__main__":
    app()
