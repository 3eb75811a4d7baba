"""Tests for the Unix socket status endpoint and the daemon entry point."""

import os
import shutil
import signal
import socket
import subprocess
import sys
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest import mock

import pomodoro
from factories import at
from toggl_pomodoro.config import FormatConfig
from toggl_pomodoro.models import Phase, SessionState
from toggl_pomodoro.server import StatusServer, query
from toggl_pomodoro.state import StateCell


class TestStatusServer(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmpdir, "p.sock")
        self.cell = StateCell()
        self.server = StatusServer(self.path, self.cell, FormatConfig(), clock=lambda: at(15))
        self.thread = threading.Thread(target=self.server.serve_forever, kwargs={"poll_interval": 0.05})
        self.thread.start()

    def tearDown(self):
        self.server.shutdown()
        self.thread.join(2)
        self.server.server_close()
        shutil.rmtree(self.tmpdir)

    def test_idle_line(self):
        self.assertEqual(query(self.path), "idle")

    def test_reports_latest_snapshot(self):
        self.cell.publish(SessionState(Phase.WORK, 2, at(25)))
        self.assertEqual(query(self.path), "Work 2[10:00]")

    def test_exactly_one_line_per_connection(self):
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(2)
            sock.connect(self.path)
            data = b""
            while True:
                chunk = sock.recv(1024)
                if not chunk:
                    break
                data += chunk
        self.assertEqual(data, b"idle\n")

    def test_many_concurrent_clients(self):
        self.cell.publish(SessionState(Phase.BREAK, 1, at(20)))
        results = []

        def client():
            results.append(query(self.path))

        threads = [threading.Thread(target=client) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)
        self.assertEqual(results, ["Break 1[05:00]"] * 10)

    def test_client_closing_early_is_harmless(self):
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.connect(self.path)
        self.assertEqual(query(self.path), "idle")


class TestDaemonEntryPoint(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_stale_socket_is_removed(self):
        path = Path(self.tmpdir) / "stale.sock"
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(str(path))
        sock.close()  # file stays, nobody listens
        pomodoro.remove_stale_socket(path)
        self.assertFalse(path.exists())

    def test_live_socket_is_kept(self):
        path = Path(self.tmpdir) / "live.sock"
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.bind(str(path))
            sock.listen(1)
            pomodoro.remove_stale_socket(path)
            self.assertTrue(path.exists())

    def test_regular_file_is_kept(self):
        path = Path(self.tmpdir) / "notes.txt"
        path.write_text("not a socket")
        with self.assertLogs("toggl_pomodoro", level="WARNING"):
            pomodoro.remove_stale_socket(path)
        self.assertEqual(path.read_text(), "not a socket")

    def test_missing_path_is_fine(self):
        pomodoro.remove_stale_socket(Path(self.tmpdir) / "absent.sock")

    def test_bad_config_exits_with_error(self):
        with mock.patch("builtins.print") as out:
            code = pomodoro.main(["-c", os.path.join(self.tmpdir, "missing.yaml")])
        self.assertEqual(code, 1)
        self.assertIn("Error:", out.call_args[0][0])

    def test_query_without_daemon(self):
        sock_path = os.path.join(self.tmpdir, "none.sock")
        with mock.patch("builtins.print"):
            code = pomodoro.main(["--query", "-s", sock_path, "-c", os.path.join(self.tmpdir, "x.yaml")])
        self.assertEqual(code, 1)

    def test_parse_args_defaults(self):
        args = pomodoro.parse_args([])
        self.assertFalse(args.query)
        self.assertIsNone(args.socket)


class TestDaemonShutdown(unittest.TestCase):
    """Run the daemon as a real process and stop it with a signal."""

    ROOT = Path(__file__).resolve().parent.parent

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.sock = os.path.join(self.tmpdir, "d.sock")
        config = os.path.join(self.tmpdir, "config.yaml")
        with open(config, "w") as f:
            f.write("toggl_token: test\ninterval: 60\n")
        env = dict(os.environ)
        # keep the refresher off the network; its fetch fails and the state stays idle
        env["HTTPS_PROXY"] = env["https_proxy"] = "http://127.0.0.1:9"
        env.pop("NO_PROXY", None)
        env.pop("no_proxy", None)
        self.proc = subprocess.Popen(
            [sys.executable, str(self.ROOT / "pomodoro.py"), "-c", config, "-s", self.sock],
            cwd=str(self.ROOT),
            env=env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def tearDown(self):
        if self.proc.poll() is None:
            self.proc.kill()
            self.proc.wait()
        shutil.rmtree(self.tmpdir)

    def wait_until_serving(self, timeout=15.0):
        deadline = time.monotonic() + timeout
        while True:
            try:
                return query(self.sock, timeout=1.0)
            except OSError:
                if self.proc.poll() is not None:
                    self.fail(f"daemon exited early with {self.proc.returncode}")
                if time.monotonic() > deadline:
                    self.fail("daemon never started serving")
                time.sleep(0.05)

    def test_sigterm_exits_cleanly(self):
        self.assertEqual(self.wait_until_serving(), "idle")
        self.proc.send_signal(signal.SIGTERM)
        self.assertEqual(self.proc.wait(timeout=15), 0)
        self.assertFalse(os.path.exists(self.sock))

    def test_sigint_exits_130(self):
        self.assertEqual(self.wait_until_serving(), "idle")
        self.proc.send_signal(signal.SIGINT)
        self.assertEqual(self.proc.wait(timeout=15), 130)
        self.assertFalse(os.path.exists(self.sock))


if __name__ == "__main__":
    unittest.main()
