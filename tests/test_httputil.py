import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from m3umerger import env, httputil


@pytest.fixture
def server():
    seen = []

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            seen.append((self.path, self.headers.get("User-Agent")))
            if self.path == "/redirect":
                self.send_response(302)
                self.send_header("Location", "/final")
                self.end_headers()
            elif self.path == "/final":
                body = b"#EXTM3U\n"
                self.send_response(200)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
            else:
                self.send_response(404)
                self.send_header("Content-Length", "0")
                self.end_headers()

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}", seen
    httpd.shutdown()
    httpd.server_close()


def test_request_keeps_user_agent_across_redirects(server, monkeypatch):
    base, seen = server
    monkeypatch.setenv("USER_AGENT", "TestAgent/2.0")
    response = httputil.custom_http_request("GET", base + "/redirect")
    try:
        assert response.status == 200
        assert response.read() == b"#EXTM3U\n"
    finally:
        response.close()
    assert seen == [("/redirect", "TestAgent/2.0"), ("/final", "TestAgent/2.0")]


def test_request_returns_error_status(server):
    base, _ = server
    response = httputil.custom_http_request("GET", base + "/missing")
    try:
        assert response.status == 404
    finally:
        response.close()


def test_base_url_from_environment(monkeypatch):
    monkeypatch.setenv("BASE_URL", "http://media.example.com/")
    assert httputil.determine_base_url("ignored", True) == "http://media.example.com"


def test_base_url_from_host(monkeypatch):
    monkeypatch.delenv("BASE_URL", raising=False)
    assert httputil.determine_base_url("example.com:8080", False) == "http://example.com:8080"
    assert httputil.determine_base_url("example.com", True) == "https://example.com"
    assert httputil.determine_base_url(None) == ""


@pytest.mark.parametrize(
    "content_type, path, expected",
    [
        ("Application/X-MpegURL", None, True),
        ("text/plain", "/a.ts", True),
        ("video/mp2t", "/live/list.M3U8", True),
        ("video/mp2t", "/live/list.m3u", True),
        ("video/mp2t", "/live/seg.ts", False),
        ("video/mp2t", None, False),
    ],
)
def test_is_an_m3u8_media(content_type, path, expected):
    assert httputil.is_an_m3u8_media(content_type, path) is expected


def test_file_extension():
    assert httputil.get_file_extension_from_url("http://example.com/a/b.ts?x=1") == ".ts"
    assert httputil.get_file_extension_from_url("http://example.com/a/b") == ""


def test_file_extension_rejects_control_characters():
    with pytest.raises(ValueError):
        httputil.get_file_extension_from_url("http://example.com/a\nb.ts")


def test_sub_path_rejects_bad_escape():
    with pytest.raises(ValueError):
        httputil.get_sub_path_from_url("http://example.com/%zz/b.ts")


def test_sub_path():
    assert httputil.get_sub_path_from_url("http://example.com/live/user/s.ts") == "live/user"
    assert httputil.get_sub_path_from_url("http://example.com") == "stream"
    assert httputil.get_sub_path_from_url("http://example.com/s.ts") == ""


def test_m3u_file_paths(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("M3U_URL_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("M3U_URL_1", "http://example.com/a.m3u")
    monkeypatch.setenv("M3U_URL_2", "http://example.com/b.m3u")
    env.reset_caches()
    try:
        paths = httputil.get_all_m3u_file_paths(tmp_path)
    finally:
        env.reset_caches()
    assert httputil.get_m3u_file_path_by_index(tmp_path, "1") == os.path.join(tmp_path, "1.m3u")
    assert sorted(paths) == [
        os.path.join(tmp_path, "1.m3u"),
        os.path.join(tmp_path, "2.m3u"),
    ]