"""Liveness and readiness endpoints backed by registered checks."""

from __future__ import annotations

import threading
from http import HTTPStatus
from typing import Any, Callable, Iterable

__all__ = ["ChecksHandler"]

_NOT_FOUND_BODY = b"404 page not found\n"


def _normalise_path(path: str) -> str:
    if not path:
        raise ValueError("check path must not be empty")
    return path if path.startswith("/") else "/" + path


class ChecksHandler:
    """Serves a liveness and a readiness path, each answering from its own checks.

    A check is a callable that raises to report failure. When
    ``pass_context`` is true, checks are called with the request context
    (the WSGI environ when served through :meth:`wsgi_app`); otherwise
    they are called with no arguments. With ``fail_fast`` the first
    failing check ends the evaluation.
    """

    def __init__(
        self,
        health_path: str = "/healthz",
        ready_path: str = "/ready",
        *,
        fail_fast: bool = False,
        pass_context: bool = False,
    ) -> None:
        self.liveness_path = _normalise_path(health_path)
        self.readiness_path = _normalise_path(ready_path)
        if self.liveness_path == self.readiness_path:
            raise ValueError(
                f"liveness and readiness share the path {self.liveness_path}"
            )
        self.fail_fast = fail_fast
        self.pass_context = pass_context
        self._liveness: dict[str, Callable[..., Any] | None] = {}
        self._readiness: dict[str, Callable[..., Any] | None] = {}
        self._lock = threading.Lock()

    def add_liveness(self, name: str, check: Callable[..., Any] | None) -> None:
        """Register or replace a liveness check."""
        with self._lock:
            self._liveness[name] = check

    def add_readiness(self, name: str, check: Callable[..., Any] | None) -> None:
        """Register or replace a readiness check."""
        with self._lock:
            self._readiness[name] = check

    def _run(
        self, checks: Iterable[tuple[str, Callable[..., Any] | None]], context: Any
    ) -> HTTPStatus:
        status = HTTPStatus.OK
        for _name, check in checks:
            if check is None:
                continue
            try:
                if self.pass_context:
                    check(context)
                else:
                    check()
            except Exception:
                status = HTTPStatus.SERVICE_UNAVAILABLE
                if self.fail_fast:
                    return status
        return status

    def handle(
        self, method: str = "GET", path: str = "/healthz", context: Any = None
    ) -> HTTPStatus:
        """Answer one request and return its HTTP status."""
        if path == self.readiness_path:
            table = self._readiness
        elif path == self.liveness_path:
            table = self._liveness
        else:
            return HTTPStatus.NOT_FOUND
        if method != "GET":
            return HTTPStatus.METHOD_NOT_ALLOWED
        with self._lock:
            checks = list(table.items())
        return self._run(checks, context)

    def wsgi_app(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> list[bytes]:
        """Serve the check endpoints as a WSGI application."""
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "") or "/"
        status = self.handle(method, path, environ)
        if status == HTTPStatus.NOT_FOUND:
            body = _NOT_FOUND_BODY
        elif status == HTTPStatus.METHOD_NOT_ALLOWED:
            body = f"{status.phrase}\n".encode()
        else:
            body = b""
        headers = [("Content-Length", str(len(body)))]
        if body:
            headers += [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("X-Content-Type-Options", "nosniff"),
            ]
        start_response(f"{status.value} {status.phrase}", headers)
        return [body]