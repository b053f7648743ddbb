"""Parsing of playlist entries, their on-disk index and output formatting."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import re
from collections.abc import Callable, Mapping

from m3umerger.attributes import (
    group_title_parser,
    tvg_ch_no_parser,
    tvg_id_parser,
    tvg_logo_parser,
    tvg_name_parser,
    tvg_type_parser,
)
from m3umerger.downloader import LineDetails
from m3umerger.httputil import get_file_extension_from_url, get_sub_path_from_url
from m3umerger.slug import encode_slug
from m3umerger.stream_info import StreamInfo

logger = logging.getLogger(__name__)

_ATTRIBUTE = re.compile(r'([a-zA-Z0-9_-]+)="([^"]*)"')
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_SETTERS: dict[str, tuple[str, Callable[[str], str]]] = {
    "tvg-id": ("tvg_id", tvg_id_parser),
    "tvg-chno": ("tvg_ch_no", tvg_ch_no_parser),
    "channel-id": ("tvg_ch_no", tvg_ch_no_parser),
    "channel-number": ("tvg_ch_no", tvg_ch_no_parser),
    "tvg-name": ("title", tvg_name_parser),
    "tvg-type": ("tvg_type", tvg_type_parser),
    "tvg-group": ("group", group_title_parser),
    "group-title": ("group", group_title_parser),
    "tvg-logo": ("logo_url", tvg_logo_parser),
}


def parse_line(
    line: str, next_line: LineDetails, m3u_index: str, streams_dir: str | os.PathLike
) -> StreamInfo | None:
    """Parse an ``#EXTINF`` line and the URL line after it.

    The URL is recorded under ``streams_dir`` in a shard chosen by its hash;
    it appears in the returned stream's URLs only when it was not yet recorded.
    Returns None when no title can be found.
    """
    logger.debug("Parsing line: %s", line)
    logger.debug("Next line: %s", next_line.content)

    clean_url = next_line.content.strip()
    stream = StreamInfo()

    remaining = line
    for match in _ATTRIBUTE.finditer(line):
        setter = _SETTERS.get(match.group(1).strip().lower())
        if setter is not None:
            attr, clean = setter
            setattr(stream, attr, clean(match.group(2).strip()))
        remaining = remaining.replace(match.group(0), "", 1)

    _, comma, display_name = remaining.partition(",")
    if comma:
        stream.title = tvg_name_parser(display_name.strip())

    if not stream.title:
        logger.debug("Stream missing title, skipping: %s", line)
        return None

    urls = stream.urls.setdefault(m3u_index, {})

    encoded_url = base64.b64encode(clean_url.encode("utf-8")).decode("ascii")
    base64_title = base64.b64encode(stream.title.encode("utf-8")).decode("ascii")
    url_hash = hashlib.sha3_224(clean_url.encode("utf-8")).hexdigest()

    shard_dir = os.path.join(os.fspath(streams_dir), url_hash[:3])
    file_path = os.path.join(shard_dir, f"{base64_title}_{m3u_index}|{url_hash}")

    stream.source_m3u = m3u_index
    stream.source_index = next_line.line_num

    try:
        os.stat(file_path)
    except FileNotFoundError:
        try:
            os.makedirs(shard_dir, exist_ok=True)
        except OSError as exc:
            logger.debug("Error creating shard directory %s: %s", shard_dir, exc)
        try:
            with open(file_path, "w", encoding="utf-8") as handle:
                handle.write(f"{next_line.line_num}:::{encoded_url}")
        except OSError as exc:
            logger.debug("Error indexing stream: %s (#%s) -> %s", stream.title, m3u_index, exc)
        urls[url_hash] = f"{next_line.line_num}:::{clean_url}"
    except OSError:
        pass

    return stream


def _url_rejected(raw_url: str) -> bool:
    """Tell whether a URL is relative with a colon in its first path segment."""
    for position, char in enumerate(raw_url):
        if char.isascii() and char.isalpha():
            continue
        if char.isascii() and (char.isdigit() or char in "+-."):
            if position == 0:
                break
            continue
        if char == ":":
            return position == 0
        break
    rest = raw_url.split("#", 1)[0].split("?", 1)[0]
    if rest.startswith("/"):
        return False
    return ":" in rest.split("/", 1)[0]


def _extension(raw_url: str) -> str:
    if _url_rejected(raw_url):
        return ""
    try:
        return get_file_extension_from_url(raw_url)
    except ValueError:
        return ""


def _sub_path(raw_url: str) -> str | None:
    if _url_rejected(raw_url):
        return None
    try:
        return get_sub_path_from_url(raw_url)
    except ValueError:
        return None


def generate_stream_url(base_url: str, stream: StreamInfo) -> str:
    """Return the proxy URL for a stream, keeping the source's path and extension."""
    extension = ""
    sub_path: str | None = None
    for inner in stream.urls.values():
        for src_url in inner.values():
            if not extension:
                extension = _extension(src_url)
            if sub_path is None:
                sub_path = _sub_path(src_url)

    slug = encode_slug(stream)
    if sub_path is not None:
        final_url = f"{base_url}/p/{sub_path}/{slug}"
    else:
        final_url = f"{base_url}/p/stream/{slug}"

    if ".m3u" in extension:
        extension = ""
    return final_url + extension


def format_stream_entry(base_url: str, stream: StreamInfo) -> str:
    """Return the two playlist lines for a stream: its ``#EXTINF`` line and URL."""
    tags = ["#EXTINF:-1"]
    if stream.tvg_id:
        tags.append(f'tvg-id="{stream.tvg_id}"')
    if stream.tvg_ch_no:
        tags.append(f'tvg-chno="{stream.tvg_ch_no}"')
    if stream.logo_url:
        tags.append(f'tvg-logo="{stream.logo_url}"')
    if stream.group:
        tags.append(f'tvg-group="{stream.group}"')
        tags.append(f'group-title="{stream.group}"')
    if stream.tvg_type:
        tags.append(f'tvg-type="{stream.tvg_type}"')
    if stream.title:
        tags.append(f'tvg-name="{stream.title}"')
    return f"{' '.join(tags)},{stream.title}\n{generate_stream_url(base_url, stream)}\n"


def _url_index(value: str) -> int:
    prefix = value.split(":::", 1)[0]
    if not _INTEGER.fullmatch(prefix):
        return 0
    number = int(prefix)
    return number if _INT64_MIN <= number <= _INT64_MAX else 0


def sort_stream_sub_urls(urls: Mapping[str, str]) -> list[str]:
    """Return the keys of ``urls`` ordered by the line index prefixed to each value."""
    return sorted(urls, key=lambda key: _url_index(urls[key]))