"""HTTP requests, base URLs and helpers for stream and playlist URLs."""

from __future__ import annotations

import logging
import os
import re
import urllib.error
import urllib.request
from urllib.parse import unquote, urlsplit

from m3umerger.env import get_env, get_m3u_indexes

logger = logging.getLogger(__name__)

_M3U_MIME_TYPES = frozenset(
    {
        "application/x-mpegurl",
        "text/plain",
        "audio/x-mpegurl",
        "audio/mpegurl",
        "application/vnd.apple.mpegurl",
    }
)
_M3U_EXTENSIONS = frozenset({".m3u", ".m3u8"})

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class _UserAgentRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follows redirects while keeping the configured User-Agent."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        new_request = super().redirect_request(req, fp, code, msg, headers, newurl)
        if new_request is not None:
            new_request.add_header("User-Agent", get_env("USER_AGENT"))
            logger.debug("Redirect : %s , %s", newurl, req.full_url)
        return new_request


def custom_http_request(method: str, url: str):
    """Send a request with the configured User-Agent and return the response.

    Responses with an error status are returned rather than raised; transport
    failures raise ``urllib.error.URLError``.
    """
    request = urllib.request.Request(url, method=method)
    request.add_header("User-Agent", get_env("USER_AGENT"))
    opener = urllib.request.build_opener(_UserAgentRedirectHandler())
    try:
        return opener.open(request)
    except urllib.error.HTTPError as exc:
        return exc


def determine_base_url(host: str | None = None, secure: bool = False) -> str:
    """Return ``BASE_URL`` if set, else a URL built from the request host."""
    custom_base = os.environ.get("BASE_URL")
    if custom_base is not None:
        return custom_base[:-1] if custom_base.endswith("/") else custom_base
    if host is not None:
        scheme = "https" if secure else "http"
        return f"{scheme}://{host}"
    return ""


def _path_ext(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _parse_path(raw_url: str) -> str:
    if _CONTROL_CHARS.search(raw_url):
        raise ValueError(f"invalid control character in URL: {raw_url!r}")
    if _BAD_ESCAPE.search(raw_url):
        raise ValueError(f"invalid URL escape in {raw_url!r}")
    return unquote(urlsplit(raw_url).path)


def is_an_m3u8_media(content_type: str | None, url_path: str | None = None) -> bool:
    """Tell whether a response looks like an M3U playlist by type or extension."""
    by_extension = url_path is not None and _path_ext(url_path).lower() in _M3U_EXTENSIONS
    by_type = (content_type or "").lower() in _M3U_MIME_TYPES
    return by_type or by_extension


def get_file_extension_from_url(raw_url: str) -> str:
    """Return the extension of the URL's path, including the dot, or ``""``."""
    return _path_ext(_parse_path(raw_url))


def get_sub_path_from_url(raw_url: str) -> str:
    """Return the directory part of the URL's path without leading slash."""
    segments = _parse_path(raw_url).split("/")
    if len(segments) <= 1:
        return "stream"
    return "/".join(segments[1:-1])


def get_m3u_file_path_by_index(sources_dir: str | os.PathLike, m3u_index: str) -> str:
    """Return where the playlist with the given index is stored."""
    return os.path.join(sources_dir, f"{m3u_index}.m3u")


def get_all_m3u_file_paths(sources_dir: str | os.PathLike) -> list[str]:
    """Return the storage path of every configured playlist."""
    return [get_m3u_file_path_by_index(sources_dir, idx) for idx in get_m3u_indexes()]