"""Line-by-line reading of playlist sources from local files or HTTP."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass
from typing import BinaryIO

from m3umerger.httputil import custom_http_request, get_m3u_file_path_by_index

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 1024 * 1024
FILE_SCHEME = "file://"


@dataclass(frozen=True)
class LineDetails:
    """One line of a playlist and its zero-based position."""

    content: str
    line_num: int


class DownloadError(Exception):
    """A playlist source could not be opened, fetched or read."""


def _scan(reader: BinaryIO, sink: BinaryIO | None = None) -> Iterator[LineDetails]:
    """Yield the lines of ``reader``, copying the raw bytes to ``sink`` if given."""
    line_num = 0
    while True:
        raw = reader.readline(MAX_LINE_BYTES + 1)
        if not raw:
            return
        if sink is not None:
            sink.write(raw)
        content = raw[:-1] if raw.endswith(b"\n") else raw
        if len(content) >= MAX_LINE_BYTES:
            raise DownloadError("error reading content: token too long")
        if content.endswith(b"\r"):
            content = content[:-1]
        yield LineDetails(content.decode("utf-8", "replace"), line_num)
        line_num += 1


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


def stream_local_file(path: str | os.PathLike) -> Iterator[LineDetails]:
    """Yield the lines of a local playlist file.

    Raises ``DownloadError`` if the file cannot be opened or a line is too long.
    """
    try:
        handle = open(path, "rb")
    except OSError as exc:
        raise DownloadError(f"error opening local file: {exc}") from exc
    with handle:
        yield from _scan(handle)


def stream_remote_url(url: str, final_path: str | os.PathLike) -> Iterator[LineDetails]:
    """Fetch a playlist over HTTP, yielding its lines while saving it to ``final_path``.

    The body is written to ``<final_path>.new`` and moved into place once read.
    Raises ``DownloadError`` on transport failures, non-200 responses and
    file-system errors.
    """
    try:
        response = custom_http_request("GET", url)
    except (OSError, ValueError) as exc:
        raise DownloadError(f"HTTP GET error: {exc}") from exc

    with closing(response):
        status = response.getcode()
        if status != 200:
            logger.error("Failed to Download , http code: %d", status)
            raise DownloadError(f"unexpected status code: {status}")

        final = os.fspath(final_path)
        tmp = final + ".new"
        logger.info("FinalPath : %s , tempPath %s", final, tmp)

        try:
            os.makedirs(os.path.dirname(final) or ".", exist_ok=True)
        except OSError as exc:
            raise DownloadError(f"error creating directories: {exc}") from exc
        try:
            tmp_file = open(tmp, "wb")
        except OSError as exc:
            raise DownloadError(f"error creating file: {exc}") from exc

        scan_error: DownloadError | None = None
        try:
            with tmp_file:
                yield from _scan(response, tmp_file)
        except DownloadError as exc:
            scan_error = exc
        except BaseException:
            _remove_quietly(tmp)
            raise

        try:
            os.replace(tmp, final)
        except OSError as exc:
            _remove_quietly(tmp)
            raise DownloadError(f"error moving file: {exc}") from exc

        if scan_error is not None:
            raise scan_error


def stream_source(m3u_index: str, sources_dir: str | os.PathLike) -> Iterator[LineDetails]:
    """Yield the lines of the playlist configured as ``M3U_URL_<m3u_index>``.

    ``file://`` URLs are read in place; other URLs are fetched and saved under
    ``sources_dir``.
    """
    url = os.environ.get(f"M3U_URL_{m3u_index}", "")
    if not url:
        raise DownloadError(f"no URL configured for M3U index {m3u_index}")
    if url.startswith(FILE_SCHEME):
        yield from stream_local_file(url[len(FILE_SCHEME):])
        return
    logger.info("M3UURL : %s", url)
    yield from stream_remote_url(url, get_m3u_file_path_by_index(sources_dir, m3u_index))