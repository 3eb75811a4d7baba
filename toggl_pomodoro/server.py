"""
Unix socket status endpoint.

Every connection gets exactly one line describing the current state and is
then closed; nothing is read from the client.
"""

import logging
import socket
import socketserver
from datetime import datetime
from typing import Callable

from .config import FormatConfig
from .state import StateCell
from .status import render_status

logger = logging.getLogger(__name__)


class StatusHandler(socketserver.StreamRequestHandler):
    def handle(self):
        server = self.server
        line = render_status(server.cell.get(), server.formats, server.clock())
        try:
            self.wfile.write((line + "\n").encode())
            self.wfile.flush()
        except OSError as e:
            logger.debug("Client went away before the reply: %s", e)


class StatusServer(socketserver.ThreadingUnixStreamServer):
    """One thread per connection; server_close() waits for them to finish."""

    daemon_threads = False
    block_on_close = True

    def __init__(self, path, cell: StateCell, formats: FormatConfig, clock: Callable[[], datetime]):
        self.cell = cell
        self.formats = formats
        self.clock = clock
        super().__init__(str(path), StatusHandler)

    def handle_error(self, request, client_address):
        logger.exception("Error while answering a status query")


def query(path, timeout: float = 5.0) -> str:
    """Read the status line from a running daemon."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        sock.connect(str(path))
        chunks = []
        while True:
            data = sock.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks).decode().rstrip("\n")
