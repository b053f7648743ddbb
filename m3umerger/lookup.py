"""Finding a stream's source URLs from its slug and the on-disk URL index."""

from __future__ import annotations

import base64
import binascii
import glob
import logging
import os
import shutil

from m3umerger.env import get_m3u_indexes
from m3umerger.slug import decode_slug
from m3umerger.stream_info import StreamInfo

logger = logging.getLogger(__name__)


def load_stream_urls(
    stream: StreamInfo, m3u_index: str, streams_dir: str | os.PathLike
) -> dict[str, str]:
    """Fill ``stream.urls[m3u_index]`` from the index files and return that mapping.

    Unreadable or malformed index files are skipped.
    """
    safe_title = base64.b64encode(stream.title.encode("utf-8")).decode("ascii")
    pattern = os.path.join(
        glob.escape(os.fspath(streams_dir)), "*", glob.escape(f"{safe_title}_{m3u_index}") + "*"
    )

    found: dict[str, str] = {}
    stream.urls[m3u_index] = found

    for match in glob.glob(pattern):
        parts = os.path.basename(match).split("|")
        if len(parts) != 2:
            continue
        try:
            with open(match, encoding="utf-8", errors="replace") as handle:
                content = handle.read()
        except OSError as exc:
            logger.debug("Error reading file %s: %s", match, exc)
            continue

        url_index, sep, encoded = content.partition(":::")
        if not sep:
            url_index, encoded = "0", content
        try:
            url = base64.b64decode(encoded, validate=True).decode("utf-8", "replace")
        except (binascii.Error, ValueError) as exc:
            logger.debug("Error decoding URL from %s: %s", match, exc)
            continue

        found[parts[1]] = f"{url_index}:::{url}".strip()
    return found


def parse_stream_info_by_slug(slug: str, streams_dir: str | os.PathLike) -> StreamInfo:
    """Decode a slug and attach every indexed URL of its title for each playlist.

    Raises ``ValueError`` for a malformed slug.
    """
    stream = decode_slug(slug)
    stream.urls = {}
    for m3u_index in get_m3u_indexes():
        load_stream_urls(stream, m3u_index, streams_dir)
    return stream


def get_stream_by_slug(slug: str, streams_dir: str | os.PathLike) -> StreamInfo:
    """Return the stream a slug stands for, with its URLs.

    Raises ``ValueError`` when the slug cannot be parsed.
    """
    try:
        return parse_stream_info_by_slug(slug, streams_dir)
    except ValueError as exc:
        raise ValueError(f"error parsing stream info: {exc}") from exc


def clear_processed_m3us(processed_dir: str | os.PathLike) -> None:
    """Delete the directory of processed playlists; failures are logged."""
    try:
        shutil.rmtree(processed_dir)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.error("%s", exc)