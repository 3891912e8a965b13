"""Relay settings display.

Prints the effective relay configuration as a Rich table before the relay
starts listening, and logs the same settings for the log file.

Example:
    show_relay_info(config)
"""

from loguru import logger
from rich.console import Console
from rich.table import Table

from throttle_relay.core.config import DIRECTION_HELP, RelayConfig
from throttle_relay.core.utils import format_size, format_rate

console = Console()


def _format_address(address: tuple[str, int]) -> str:
    host, port = address
    if ":" in host:
        host = f"[{host}]"
    return f"{host or '*'}:{port}"


def show_relay_info(config: RelayConfig) -> None:
    """Display the relay settings.

    Args:
        config: Validated relay configuration
    """
    table = Table(title="Throttle Relay")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Listen", _format_address(config.listen_address))
    table.add_row("Upstream", _format_address(config.upstream_address))
    table.add_row("Direction", f"{config.direction.value} ({DIRECTION_HELP[config.direction]})")
    table.add_row("Chunk Size", format_size(config.chunk_size))
    table.add_row("Delay", f"{config.delay_ms}ms")
    table.add_row("Max Rate", format_rate(config.chunk_size, config.delay_ms))

    console.print(table)

    logger.info(f"Delay: {config.delay_ms}ms")
    logger.info(f"Listen: {_format_address(config.listen_address)}")
    logger.info(f"Upstream: {_format_address(config.upstream_address)}")
    logger.info(f"Throttle Direction: {config.direction.value}")
