"""Threaded relay server and shutdown handling.

This module implements the accept side of the relay:
- ``RelayServer`` binds the listen address, accepts connections and runs one
  ``RelaySession`` per connection on its own thread
- ``RelayHandler`` bridges socketserver requests to sessions and keeps the
  session registry up to date
- ``ShutdownTrigger`` turns the first SIGINT into a clean stop of the accept
  loop without touching sessions that are already running

Sessions are tracked, so after the accept loop stops the caller can drain
them with an optional timeout.

Example:
    server = RelayServer(config)
    ShutdownTrigger(server).install()
    server.serve()
    server.drain(timeout=30)
"""

import signal
import socket
import socketserver
import threading
from typing import Final

from loguru import logger

from throttle_relay.core.config import RelayConfig

from .session import RelaySession
from .session_registry import SessionRegistry

POLL_INTERVAL: Final = 0.2  # Seconds between shutdown checks in the accept loop


class RelayHandler(socketserver.BaseRequestHandler):
    """Run a relay session for one accepted connection."""

    server: "RelayServer"

    def handle(self) -> None:
        """Relay the accepted connection until both directions end."""
        registry = self.server.registry
        logger.info(f"Accepted {self.client_address[0]}:{self.client_address[1]}")
        try:
            RelaySession(self.request, self.server.config, self.client_address).run()
        except Exception:
            logger.exception(f"Unexpected error in session for {self.client_address}")
        finally:
            registry.session_ended(self.client_address)


class RelayServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Relay server accepting clients and spawning one session each."""

    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False
    request_queue_size = 128

    def __init__(self, config: RelayConfig, registry: SessionRegistry | None = None) -> None:
        """Bind and listen on the configured address.

        Args:
            config: Relay configuration, shared read-only with every session
            registry: Session registry (default: a new one)

        Raises:
            OSError: If the listen address cannot be bound
        """
        self.config = config
        self.registry = registry or SessionRegistry()
        self._serving = threading.Event()
        self._stopped = threading.Event()
        self._stop_lock = threading.Lock()
        if ":" in config.listen_address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(config.listen_address, RelayHandler)

    @property
    def address(self) -> tuple[str, int]:
        """Address the server is actually listening on."""
        return self.server_address[:2]

    def process_request(self, request, client_address) -> None:
        """Register the session before its thread starts, then spawn it."""
        # Registered on the accept thread so drain never misses a session
        self.registry.session_started(client_address)
        try:
            super().process_request(request, client_address)
        except Exception:
            self.registry.session_ended(client_address)
            request.close()
            raise

    def shutdown_request(self, request) -> None:
        """Leave the client socket alone; the session has closed it."""

    def serve(self) -> None:
        """Accept connections until ``stop`` is called."""
        with self._stop_lock:
            if self._stopped.is_set():
                return
            self._serving.set()
        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")
        try:
            self.serve_forever(poll_interval=POLL_INTERVAL)
        finally:
            self._serving.clear()

    def stop(self) -> None:
        """Stop accepting and close the listening socket.

        Must not be called from the thread running ``serve``. Sessions that
        are already running are not affected.
        """
        with self._stop_lock:
            if self._stopped.is_set():
                return
            self._stopped.set()
            if self._serving.is_set():
                self.shutdown()
            self.server_close()
        logger.debug("Listener closed")

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight sessions to finish.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely

        Returns:
            bool: True if no session is left running
        """
        active = self.registry.active_sessions
        if active:
            logger.info(f"Waiting for {active} active session(s) to finish")
        return self.registry.wait_idle(timeout)


class ShutdownTrigger:
    """Stop a relay server on the first interrupt signal."""

    def __init__(self, server: RelayServer, signum: int = signal.SIGINT) -> None:
        """Initialize the trigger.

        Args:
            server: Server to stop
            signum: Signal that triggers the shutdown
        """
        self.server = server
        self.signum = signum
        self._fired = threading.Event()

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    def install(self) -> None:
        """Register the signal handler. Must run on the main thread."""
        signal.signal(self.signum, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        # A second signal gets the process default handling
        default = signal.default_int_handler if self.signum == signal.SIGINT else signal.SIG_DFL
        signal.signal(self.signum, default)
        self.fire()

    def fire(self) -> threading.Thread | None:
        """Stop the server from a helper thread, at most once.

        The signal handler runs on the thread that is blocked in ``serve``,
        so stopping has to happen elsewhere.

        Returns:
            threading.Thread | None: The stopping thread, or None if the
            trigger had already fired
        """
        if self._fired.is_set():
            return None
        self._fired.set()
        logger.info("Bye")
        thread = threading.Thread(target=self.server.stop, name="relay-shutdown", daemon=True)
        thread.start()
        return thread
