import signal
import socket
import subprocess
import sys
from unittest import mock

import pytest

from atlaskit.integration import (
    PortError,
    get_open_port,
    get_open_port_in_range,
    run_binary,
    run_container,
)


@pytest.mark.parametrize(
    "lower,upper,message",
    [
        (-1, 0, "port discovery error: port cannot be less than 0"),
        (65536, 65545, "port discovery error: port cannot be greater than 65535"),
        (20, 10, "port discovery error: no open port found 0"),
    ],
)
def test_port_range_errors(lower, upper, message):
    with pytest.raises(PortError) as info:
        get_open_port_in_range(lower, upper)
    assert str(info.value) == message


def test_listening_port_is_skipped():
    with socket.socket() as server:
        server.bind(("127.0.0.1", 0))
        server.listen()
        port = server.getsockname()[1]
        with pytest.raises(PortError) as info:
            get_open_port_in_range(port, port)
    assert info.value.message == "no open port found 0"


def test_free_port_is_returned():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    assert get_open_port_in_range(port, port) == port


def test_get_open_port_in_bounds():
    port = get_open_port()
    assert 0 <= port <= 65535


def test_run_binary_and_stop():
    stop = run_binary(sys.executable, "-c", "import time; time.sleep(30)")
    code = stop()
    expected = 1 if sys.platform == "win32" else -signal.SIGKILL
    assert code == expected


def test_run_binary_missing():
    with pytest.raises(FileNotFoundError):
        run_binary("no-such-binary-here")


def test_run_container_command_and_kill():
    calls = []

    def fake_run(command, **kwargs):
        calls.append(command)
        return subprocess.CompletedProcess(command, 0, stdout="abc123\n")

    with mock.patch("subprocess.run", side_effect=fake_run):
        stop = run_container("postgres:latest", ["--rm", "--publish=1:5432"], ["-c", "x"])
        assert calls == [
            ["docker", "run", "-d", "--rm", "--publish=1:5432", "postgres:latest", "-c", "x"],
        ]
        outcome = stop()
    assert getattr(outcome, "returncode", outcome) in (None, 0)
    assert len(calls) == 2
    assert calls[1] == ["docker", "kill", "abc123"]


def test_run_container_failure():
    failed = subprocess.CompletedProcess([], 125, stdout="no such image")
    with mock.patch("subprocess.run", return_value=failed):
        with pytest.raises(RuntimeError) as info:
            run_container("missing", [], [])
    assert str(info.value) == "exit status 125: no such image"