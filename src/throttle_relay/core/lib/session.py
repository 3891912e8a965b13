"""Relay session for one accepted client connection.

A session owns two sockets for its whole lifetime: the accepted client socket
and the upstream socket it dials on start. It runs one copier per direction on
its own thread, throttled or pass-through depending on the configured
direction, and closes both sockets once both copiers are done.

Failure handling:
- A failed dial is logged and ends the session; only the client is closed
- End-of-stream on one direction half-closes the destination so the peer
  sees it too, while the other direction keeps running
- A transfer error cancels the session: both sockets are shut down, which
  unblocks whatever the other copier was waiting on

Example:
    session = RelaySession(client_socket, config, client_address)
    session.run()
"""

import contextlib
import socket
import threading

from loguru import logger

from throttle_relay.core.config import Direction, RelayConfig
from throttle_relay.core.exceptions import TransferError, UpstreamDialError

from .copier import passthrough_copy, throttled_copy

# (client -> upstream throttled, upstream -> client throttled)
THROTTLE_PLANS = {
    Direction.CLIENT_TO_SERVER: (True, False),
    Direction.SERVER_TO_CLIENT: (False, True),
    Direction.NONE: (False, False),
    Direction.BOTH: (True, True),
}


def throttle_plan(direction: Direction | str) -> tuple[bool, bool]:
    """Return which directions are throttled for a direction mode.

    Unrecognized values throttle both directions.
    """
    return THROTTLE_PLANS.get(direction, THROTTLE_PLANS[Direction.BOTH])


def _set_nodelay(sock: socket.socket) -> None:
    # Not every socket family supports TCP options
    with contextlib.suppress(OSError):
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)


class RelaySession:
    """Relay bytes between one client and the upstream server."""

    def __init__(
        self,
        client: socket.socket,
        config: RelayConfig,
        client_address: tuple | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            client: Accepted client socket, owned by the session from now on
            config: Shared relay configuration
            client_address: Client address used in log messages
        """
        self.client = client
        self.config = config
        self.client_address = client_address
        self.upstream: socket.socket | None = None
        self.cancelled = threading.Event()

    @property
    def label(self) -> str:
        if not self.client_address:
            return "client"
        return f"{self.client_address[0]}:{self.client_address[1]}"

    def _dial(self) -> socket.socket:
        """Connect to the upstream server.

        Raises:
            UpstreamDialError: If the connection cannot be established
        """
        host, port = self.config.upstream_address
        try:
            return socket.create_connection((host, port))
        except OSError as exc:
            raise UpstreamDialError(f"Failed to dial upstream {host}:{port}: {exc}") from exc

    def run(self) -> None:
        """Dial upstream, relay both directions and close both sockets."""
        with contextlib.closing(self.client):
            _set_nodelay(self.client)
            try:
                upstream = self._dial()
            except UpstreamDialError as exc:
                logger.error(f"{self.label}: {exc}")
                return

            with contextlib.closing(upstream):
                self.upstream = upstream
                _set_nodelay(upstream)
                self._relay(upstream)

        logger.debug(f"{self.label}: session closed")

    def _relay(self, upstream: socket.socket) -> None:
        throttle_up, throttle_down = throttle_plan(self.config.direction)
        workers = [
            threading.Thread(
                target=self._pump,
                args=(self.client, upstream, throttle_up, "client -> upstream"),
                name=f"relay-up-{self.label}",
                daemon=True,
            ),
            threading.Thread(
                target=self._pump,
                args=(upstream, self.client, throttle_down, "upstream -> client"),
                name=f"relay-down-{self.label}",
                daemon=True,
            ),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

    def _pump(
        self,
        source: socket.socket,
        destination: socket.socket,
        throttled: bool,
        path: str,
    ) -> None:
        """Run one direction of the relay until it ends."""
        try:
            if throttled:
                throttled_copy(
                    source,
                    destination,
                    self.config.chunk_size,
                    self.config.delay,
                    self.cancelled,
                )
            else:
                passthrough_copy(source, destination, self.cancelled)
        except TransferError as exc:
            if self.cancelled.is_set():
                logger.debug(f"{self.label} {path}: stopped after cancel ({exc})")
            elif throttled:
                logger.warning(f"{self.label} {path}: {exc}")
            else:
                logger.debug(f"{self.label} {path}: {exc}")
            self.cancel()
            return

        # Forward end-of-stream to the peer
        with contextlib.suppress(OSError):
            destination.shutdown(socket.SHUT_WR)

    def cancel(self) -> None:
        """Stop both directions by shutting down both sockets.

        Blocked reads and writes on either socket return at once and pending
        throttle pauses end early. Sockets are still closed only by ``run``.
        """
        if self.cancelled.is_set():
            return
        self.cancelled.set()
        for sock in (self.client, self.upstream):
            if sock is None:
                continue
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
