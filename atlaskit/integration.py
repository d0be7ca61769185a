"""Helpers for integration tests: free ports, binaries and containers."""

from __future__ import annotations

import os
import socket
import subprocess
from typing import Callable, Sequence

__all__ = [
    "PortError",
    "get_open_port_in_range",
    "get_open_port",
    "run_binary",
    "run_container",
]

PORT_RANGE_MIN = 0
PORT_RANGE_MAX = 65535


class PortError(Exception):
    """Raised when no usable port can be found."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"port discovery error: {message}")


def _port_in_use(port: int) -> bool:
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=1):
            return True
    except (OSError, OverflowError):
        return False


def get_open_port_in_range(lower: int, upper: int) -> int:
    """Return the first port in ``[lower, upper]`` that nothing listens on."""
    if lower < PORT_RANGE_MIN:
        raise PortError(f"port cannot be less than {PORT_RANGE_MIN}")
    for port in range(lower, min(upper, PORT_RANGE_MAX) + 1):
        if not _port_in_use(port):
            return port
    if upper > PORT_RANGE_MAX:
        raise PortError(f"port cannot be greater than {PORT_RANGE_MAX}")
    raise PortError(f"no open port found {PORT_RANGE_MIN}")


def get_open_port() -> int:
    """Return the first unused port on the host."""
    return get_open_port_in_range(PORT_RANGE_MIN, PORT_RANGE_MAX)


def run_binary(path: str | os.PathLike[str], *args: str) -> Callable[[], int]:
    """Start a binary with inherited output; return a function that kills it.

    The returned function waits for the process and gives its exit code.
    """
    process = subprocess.Popen([os.path.abspath(path), *args])

    def stop() -> int:
        process.kill()
        return process.wait()

    return stop


def run_container(
    image: str, docker_args: Sequence[str], runtime_args: Sequence[str]
) -> Callable[[], None]:
    """Launch a detached docker container; return a function that kills it."""
    command = ["docker", "run", "-d", *docker_args, image, *runtime_args]
    result = subprocess.run(
        command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
    )
    if result.returncode != 0:
        raise RuntimeError(f"exit status {result.returncode}: {result.stdout}")
    container_id = result.stdout.split("\n")[0]

    def stop() -> None:
        subprocess.run(["docker", "kill", container_id], check=True)

    return stop