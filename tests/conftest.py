import contextlib
import socket
import threading
import time

import pytest
from loguru import logger

from throttle_relay.core.config import Direction, RelayConfig
from throttle_relay.core.lib import RelayServer

TIMEOUT = 5.0


class UpstreamServer:
    """Loopback TCP server standing in for the relayed upstream.

    Modes:
        echo: send every byte back
        sink: record what arrives, with arrival times
        close: close each connection right after accepting it
    """

    def __init__(self, mode: str = "echo", port: int = 0) -> None:
        self.mode = mode
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", port))
        self.sock.listen(16)
        self.sock.settimeout(0.1)
        self.address = self.sock.getsockname()
        self.received = bytearray()
        self.arrivals: list[tuple[float, bytes]] = []
        self.connections = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    def _accept_loop(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            conn.settimeout(None)
            with self._lock:
                self.connections += 1
            if self.mode == "close":
                conn.close()
                continue
            threading.Thread(target=self._serve, args=(conn,), daemon=True).start()

    def _serve(self, conn: socket.socket) -> None:
        with conn:
            while True:
                try:
                    data = conn.recv(4096)
                except OSError:
                    return
                if not data:
                    return
                with self._lock:
                    self.received.extend(data)
                    self.arrivals.append((time.monotonic(), data))
                if self.mode == "echo":
                    try:
                        conn.sendall(data)
                    except OSError:
                        return

    def wait_for(self, count: int, timeout: float = TIMEOUT) -> bytes:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            with self._lock:
                if len(self.received) >= count:
                    return bytes(self.received)
            time.sleep(0.005)
        raise AssertionError(f"upstream received {len(self.received)} of {count} bytes")

    def close(self) -> None:
        self._stop.set()
        self.sock.close()
        self._thread.join(TIMEOUT)


def recv_exactly(sock: socket.socket, count: int) -> bytes:
    data = bytearray()
    while len(data) < count:
        chunk = sock.recv(count - len(data))
        if not chunk:
            break
        data.extend(chunk)
    return bytes(data)


def make_config(upstream, direction=Direction.NONE, chunk_size=1, delay_ms=0) -> RelayConfig:
    return RelayConfig(
        chunk_size=chunk_size,
        delay_ms=delay_ms,
        listen_address=("127.0.0.1", 0),
        upstream_address=tuple(upstream),
        direction=direction,
    )


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def upstream_factory():
    servers: list[UpstreamServer] = []

    def factory(mode: str = "echo", port: int = 0) -> UpstreamServer:
        server = UpstreamServer(mode, port)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.close()


@pytest.fixture
def echo_upstream(upstream_factory):
    return upstream_factory("echo")


@pytest.fixture
def refused_address():
    """An address nobody is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()


@pytest.fixture
def tcp_pair():
    """Factory for connected (client side, accepted side) socket pairs."""
    sockets: list[socket.socket] = []

    def factory() -> tuple[socket.socket, socket.socket]:
        with socket.create_server(("127.0.0.1", 0)) as listener:
            client = socket.create_connection(listener.getsockname())
            accepted, _ = listener.accept()
        client.settimeout(TIMEOUT)
        sockets.extend([client, accepted])
        return client, accepted

    yield factory
    for sock in sockets:
        sock.close()


@pytest.fixture
def relay_factory():
    """Start relay servers on background threads and stop them afterwards."""
    running: list[tuple[RelayServer, threading.Thread]] = []

    def factory(config: RelayConfig) -> RelayServer:
        server = RelayServer(config)
        thread = threading.Thread(target=server.serve, daemon=True)
        thread.start()
        running.append((server, thread))
        return server

    yield factory
    for server, thread in running:
        with contextlib.suppress(OSError):
            server.stop()
        thread.join(TIMEOUT)


def connect(server: RelayServer) -> socket.socket:
    sock = socket.create_connection(server.address, timeout=TIMEOUT)
    return sock
