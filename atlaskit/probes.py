"""Ready-made checks probing DNS names and HTTP endpoints."""

from __future__ import annotations

import socket
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable

__all__ = ["ProbeError", "dns_probe_check", "http_get_check"]


class ProbeError(Exception):
    """Raised by a probe check that failed."""


def dns_probe_check(host: str, timeout: float) -> Callable[[], None]:
    """Return a check that fails unless ``host`` resolves within ``timeout`` seconds."""

    def check() -> None:
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(socket.getaddrinfo, host, None)
            addresses = future.result(timeout=timeout)
        except FutureTimeout:
            raise ProbeError(f"lookup {host}: timed out") from None
        except OSError as exc:
            raise ProbeError(f"lookup {host}: {exc}") from exc
        finally:
            executor.shutdown(wait=False)
        if not addresses:
            raise ProbeError("could not resolve host")

    return check


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Report a redirect as the final response instead of following it."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        raise urllib.error.HTTPError(req.full_url, code, msg, headers, fp)


def http_get_check(url: str, timeout: float) -> Callable[[], None]:
    """Return a check that GETs ``url`` and fails on anything but 200 OK.

    Redirects are never followed.
    """
    opener = urllib.request.build_opener(_NoRedirect)

    def check() -> None:
        try:
            with opener.open(url, timeout=timeout) as response:
                status, reason = response.status, response.reason
        except urllib.error.HTTPError as exc:
            status, reason = exc.code, exc.reason
            exc.close()
        except (urllib.error.URLError, OSError) as exc:
            raise ProbeError(str(exc)) from exc
        if status != 200:
            raise ProbeError(f"{status}: {status} {reason}")

    return check