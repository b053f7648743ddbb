"""Compact URL-safe slugs that carry a stream's attributes."""

from __future__ import annotations

import base64
import binascii
import io
import json
import re

import zstandard

from m3umerger.stream_info import StreamInfo

_SLUG_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")
_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _marshal(stream: StreamInfo) -> bytes:
    text = json.dumps(stream.to_dict(), ensure_ascii=False, separators=(",", ":"))
    for char, escape in _HTML_ESCAPES:
        text = text.replace(char, escape)
    return text.encode("utf-8", "replace")


def encode_slug(stream: StreamInfo) -> str:
    """Return the stream's attributes as zstd-compressed, unpadded URL-safe base64."""
    compressed = zstandard.ZstdCompressor().compress(_marshal(stream))
    return base64.urlsafe_b64encode(compressed).rstrip(b"=").decode("ascii")


def decode_slug(encoded_slug: str) -> StreamInfo:
    """Rebuild a stream from a slug; its URL map starts empty.

    Raises ``ValueError`` when the slug is not valid base64, zstd or JSON.
    """
    if not _SLUG_ALPHABET.fullmatch(encoded_slug):
        raise ValueError("error decoding Base64 data: illegal character in slug")
    try:
        raw = base64.b64decode(
            encoded_slug + "=" * (-len(encoded_slug) % 4), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"error decoding Base64 data: {exc}") from exc

    try:
        decompressor = zstandard.ZstdDecompressor()
        with decompressor.stream_reader(io.BytesIO(raw), read_across_frames=True) as reader:
            payload = reader.read()
    except zstandard.ZstdError as exc:
        raise ValueError(f"error reading decompressed data: {exc}") from exc

    try:
        data = json.loads(payload.decode("utf-8", "replace"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"error deserializing data: {exc}") from exc

    if data is None:
        return StreamInfo()
    try:
        stream = StreamInfo.from_dict(data)
    except ValueError as exc:
        raise ValueError(f"error deserializing data: {exc}") from exc
    stream.urls = {}
    return stream