"""Main entry point for running the throttling relay.

This module ties the core components together: it binds the relay server,
installs the interrupt handler, runs the accept loop and drains sessions once
the loop has stopped.

Example:
    from throttle_relay.core.relay import run_relay

    config = RelayConfig.from_options(size=10, delay=50, listen=":8080", upstream="example.com:80")
    run_relay(config, drain_timeout=30)
"""

from loguru import logger

from throttle_relay.core.config import RelayConfig

from .lib import RelayServer, ShutdownTrigger


def create_relay_server(config: RelayConfig) -> RelayServer:
    """Bind a relay server for the given configuration.

    Raises:
        OSError: If the listen address cannot be bound
    """
    server = RelayServer(config)
    host, port = server.address
    logger.debug(f"Bound relay server to {host}:{port}")
    return server


def run_relay(config: RelayConfig, drain_timeout: float | None = None) -> bool:
    """Run the relay until interrupted, then drain in-flight sessions.

    Must be called from the main thread so the interrupt handler can be
    installed.

    Args:
        config: Relay configuration
        drain_timeout: Seconds to wait for sessions after shutdown, or None
            to wait until they all finish

    Returns:
        bool: True if every session finished before returning

    Raises:
        OSError: If the listen address cannot be bound
    """
    server = create_relay_server(config)
    trigger = ShutdownTrigger(server)
    trigger.install()

    try:
        server.serve()
    finally:
        server.stop()

    drained = server.drain(drain_timeout)
    if not drained:
        running = sorted(server.registry.durations().items(), key=lambda item: item[1], reverse=True)
        logger.warning(f"{len(running)} session(s) still running, exiting anyway")
        for (host, port, *_), seconds in running:
            logger.warning(f"Dropping session {host}:{port} after {seconds:.1f}s")
    logger.info(f"Relay stopped after {server.registry.total_sessions} session(s)")
    return drained
