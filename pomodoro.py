#!/usr/bin/env python3
"""
Pomodoro timer driven by Toggl time entries.
Rebuilds the current phase from the Toggl log every few seconds, sends
escalating reminders when a phase runs over, and answers status-bar queries
on a Unix socket.
"""

import argparse
import logging
import signal
import socket
import stat
import sys
import threading

from toggl_pomodoro import __version__
from toggl_pomodoro.config import CONFIG_FILE, load_config, socket_path
from toggl_pomodoro.driver import Refresher, utcnow
from toggl_pomodoro.errors import ConfigError
from toggl_pomodoro.escalation import EscalationController
from toggl_pomodoro.notifiers import build_notifiers
from toggl_pomodoro.server import StatusServer, query
from toggl_pomodoro.state import StateCell
from toggl_pomodoro.toggl import TogglSource

logger = logging.getLogger("toggl_pomodoro")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Pomodoro timer with Toggl")
    parser.add_argument("-c", "--config", default=str(CONFIG_FILE), help=f"Config file (default: {CONFIG_FILE})")
    parser.add_argument("-s", "--socket", help="Unix domain socket path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--query", action="store_true", help="Print the status of a running daemon and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


# === SOCKET FILE ===


def _socket_in_use(path) -> bool:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        try:
            sock.connect(str(path))
        except OSError:
            return False
    return True


def remove_stale_socket(path) -> None:
    """Delete a socket file left behind by a daemon that is gone."""
    if not path.exists():
        return
    if not stat.S_ISSOCK(path.stat().st_mode):
        logger.warning("%s exists and is not a socket, leaving it alone", path)
        return
    if not _socket_in_use(path):
        logger.info("Removing stale socket %s", path)
        path.unlink()


def _terminate(signum, frame):
    raise SystemExit(0)


# === MAIN ===


def run_query(args) -> int:
    try:
        config = load_config(args.config)
    except ConfigError:
        config = None
    path = socket_path(config, args.socket)
    try:
        print(query(path))
    except OSError as e:
        print(f"Error: no daemon on {path}: {e}")
        return 1
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.query:
        return run_query(args)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    path = socket_path(config, args.socket)
    remove_stale_socket(path)

    cell = StateCell()
    controller = EscalationController(
        build_notifiers(config.notification), config.pomodoro, config.escalation
    )
    refresher = Refresher(
        TogglSource(config.toggl_token),
        controller,
        cell,
        config.pomodoro,
        interval=config.interval,
        clock=utcnow,
    )

    try:
        server = StatusServer(path, cell, config.format, clock=utcnow)
    except OSError as e:
        print(f"Error: cannot listen on {path}: {e}")
        return 1

    signal.signal(signal.SIGTERM, _terminate)
    # a daemon started in the background inherits SIGINT as ignored
    signal.signal(signal.SIGINT, signal.default_int_handler)
    stop = threading.Event()
    refresher.start(stop)
    print(f"Pomodoro daemon listening on {path}")

    exit_code = 0
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        exit_code = 130
    finally:
        stop.set()
        server.server_close()
        path.unlink(missing_ok=True)
        logger.info("Stopped")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
