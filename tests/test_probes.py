import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest import mock

import pytest

from atlaskit.probes import ProbeError, dns_probe_check, http_get_check


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/get":
            self.send_response(200)
            self.send_header("Content-Length", "2")
            self.end_headers()
            self.wfile.write(b"ok")
        elif self.path.startswith("/relative-redirect"):
            self.send_response(302)
            self.send_header("Location", "/get")
            self.send_header("Content-Length", "0")
            self.end_headers()
        else:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()

    def log_message(self, *args):
        pass


@pytest.fixture()
def base_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_http_get_ok(base_url):
    assert http_get_check(base_url + "/get", 5)() is None


def test_http_redirect_is_failure(base_url):
    with pytest.raises(ProbeError, match=r"^302: 302 Found$"):
        http_get_check(base_url + "/relative-redirect/:1", 5)()


def test_http_not_found_is_failure(base_url):
    with pytest.raises(ProbeError, match=r"^404: 404 Not Found$"):
        http_get_check(base_url + "/nonexistent", 5)()


def test_http_unreachable_is_failure():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    with pytest.raises(ProbeError):
        http_get_check(f"http://127.0.0.1:{port}/get", 2)()


def test_dns_resolves():
    infos = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.1", 0))]
    with mock.patch.object(socket, "getaddrinfo", return_value=infos) as lookup:
        assert dns_probe_check("google.com", 5)() is None
    assert lookup.call_args.args[0] == "google.com"


def test_dns_failure():
    error = socket.gaierror(-2, "Name or service not known")
    with mock.patch.object(socket, "getaddrinfo", side_effect=error):
        with pytest.raises(ProbeError, match="never.ever.where.com"):
            dns_probe_check("never.ever.where.com", 5)()


def test_dns_no_addresses():
    with mock.patch.object(socket, "getaddrinfo", return_value=[]):
        with pytest.raises(ProbeError, match="^could not resolve host$"):
            dns_probe_check("empty.example.com", 5)()


def test_dns_timeout():
    release = threading.Event()

    def slow(*args, **kwargs):
        release.wait(5)
        return []

    with mock.patch.object(socket, "getaddrinfo", side_effect=slow):
        try:
            with pytest.raises(ProbeError, match="timed out"):
                dns_probe_check("slow.example.com", 0.05)()
        finally:
            release.set()