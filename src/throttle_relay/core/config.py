"""Relay configuration.

The configuration is built once at startup, validated, and then shared
read-only by the accept loop and every session. It is a frozen dataclass,
so sessions running on different threads never need to synchronize on it.

Example:
    config = RelayConfig.from_options(
        size=10,
        delay=50,
        listen=":8080",
        upstream="example.com:80",
        direction="cs",
    )
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final

from throttle_relay.core.exceptions import ConfigurationError

# Used when an upstream address omits the host, e.g. ":8080"
DEFAULT_UPSTREAM_HOST: Final = "localhost"
MAX_PORT: Final = 65535

Address = tuple[str, int]


class Direction(str, Enum):
    """Which transfer path(s) of a session are throttled."""

    CLIENT_TO_SERVER = "cs"
    SERVER_TO_CLIENT = "sc"
    BOTH = "both"
    NONE = "none"


DIRECTION_HELP: Final = {
    Direction.CLIENT_TO_SERVER: "throttle client to server data path",
    Direction.SERVER_TO_CLIENT: "throttle server to client data path",
    Direction.BOTH: "throttle both directions",
    Direction.NONE: "do not throttle",
}


def parse_address(value: str, option: str, *, default_host: str = "") -> Address:
    """Parse a ``host:port`` string into a socket address.

    IPv6 hosts may be written in brackets (``[::1]:8080``). An empty host
    is replaced with ``default_host``.

    Args:
        value: Address string to parse
        option: Option name reported in errors
        default_host: Host used when the string has none

    Returns:
        Address: ``(host, port)`` tuple

    Raises:
        ConfigurationError: If the string is empty or malformed
    """
    if not value:
        raise ConfigurationError(f"{option}: address is required")

    host, sep, port_text = value.rpartition(":")
    if not sep:
        raise ConfigurationError(f"{option}: missing port in address {value!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"{option}: invalid port in address {value!r}") from None
    if not 0 <= port <= MAX_PORT:
        raise ConfigurationError(f"{option}: port out of range in address {value!r}")

    return (host or default_host, port)


def _parse_int(value: int | str, option: str) -> int:
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{option}: must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class RelayConfig:
    """Immutable relay settings.

    Attributes:
        chunk_size: Bytes per throttled write (>= 1)
        delay_ms: Pause after each throttled write in milliseconds (>= 0)
        listen_address: Local ``(host, port)`` to accept clients on
        upstream_address: Remote ``(host, port)`` to relay to
        direction: Which path(s) are throttled
    """

    chunk_size: int
    delay_ms: int
    listen_address: Address
    upstream_address: Address
    direction: Direction = Direction.BOTH

    def __post_init__(self) -> None:
        """Validate the settings and coerce the direction."""
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ConfigurationError(f"size: must be an integer >= 1, got {self.chunk_size!r}")
        if isinstance(self.delay_ms, bool) or not isinstance(self.delay_ms, int) or self.delay_ms < 0:
            raise ConfigurationError(f"delay: must be an integer >= 0, got {self.delay_ms!r}")
        try:
            direction = Direction(self.direction)
        except ValueError:
            choices = ", ".join(d.value for d in Direction)
            raise ConfigurationError(
                f"direction: must be one of {choices}, got {self.direction!r}"
            ) from None
        # Frozen dataclass, so bypass __setattr__ for the coerced value
        object.__setattr__(self, "direction", direction)

    @property
    def delay(self) -> float:
        """Pause after each throttled write, in seconds."""
        return self.delay_ms / 1000

    @classmethod
    def from_options(
        cls,
        *,
        size: int | str,
        delay: int | str,
        listen: str,
        upstream: str,
        direction: str | Direction = Direction.BOTH,
    ) -> "RelayConfig":
        """Build a config from command-line style values.

        Numbers may be given as strings, as they arrive from the command line
        or the environment.

        Raises:
            ConfigurationError: If any option is invalid
        """
        return cls(
            chunk_size=_parse_int(size, "size"),
            delay_ms=_parse_int(delay, "delay"),
            listen_address=parse_address(listen, "listen"),
            upstream_address=parse_address(upstream, "upstream", default_host=DEFAULT_UPSTREAM_HOST),
            direction=direction,
        )
