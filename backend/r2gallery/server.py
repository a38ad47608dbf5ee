"""
Server runner.

Starts uvicorn with the application factory. When the configured port is
taken the runner either fails with a clear error (default) or, with
PORT_AUTO_INCREMENT=true, moves on to the next free port.
"""
import errno
import logging
import os
import socket
from typing import Optional

import uvicorn

from r2gallery.config import Settings, get_settings
from r2gallery.main import create_app
from r2gallery.utils.logging import configure_logging

logger = logging.getLogger(__name__)


MAX_PORT = 65535


class PortUnavailableError(RuntimeError):
    """No port could be bound for the server."""


def is_port_free(host: str, port: int) -> bool:
    """Try to bind host:port the way uvicorn does; True when nothing is listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        if os.name == "posix":
            # uvicorn binds with SO_REUSEADDR, so TIME_WAIT leftovers do not count
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno in (errno.EADDRINUSE, errno.EACCES):
                return False
            raise
    return True


def select_port(settings: Settings) -> int:
    """
    Pick the port to listen on.

    Raises:
        PortUnavailableError: If the configured port (or every tried
            port, when auto-increment is on) is busy
    """
    attempts = settings.port_search_limit if settings.port_auto_increment else 1
    last = min(settings.port + attempts - 1, MAX_PORT)

    for port in range(settings.port, last + 1):
        if is_port_free(settings.host, port):
            return port
        if settings.port_auto_increment and port < last:
            logger.warning(f"Port {port} is in use, trying port {port + 1}")

    if settings.port_auto_increment:
        raise PortUnavailableError(
            f"No free port between {settings.port} and {last} on {settings.host}"
        )
    raise PortUnavailableError(
        f"Port {settings.port} is already in use on {settings.host}. "
        f"Set PORT to a free port or PORT_AUTO_INCREMENT=true."
    )


def main(settings: Optional[Settings] = None) -> None:
    """Console entry point: python -m r2gallery."""
    settings = settings or get_settings()
    configure_logging(settings.service_name, settings.log_level)

    port = select_port(settings)
    logger.info(f"Server running at http://{settings.host}:{port}")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=port,
        log_config=None,  # keep the JSON logging configured above
    )
