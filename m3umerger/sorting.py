"""Disk-backed de-duplication and ordering of parsed streams."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import shutil
import threading
from typing import Any

from m3umerger.stream_info import StreamInfo

logger = logging.getLogger(__name__)

MUTEX_SHARDS = 4096
SHARD_FILE_TEMPLATE = "shard-{:04d}.json"
BUFFER_LIMIT = 250
MAX_SANITIZED_BYTES = 100
DESC_MAX_VALUE = 2**31 - 1

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_SANITIZE = str.maketrans(
    {
        "/": "_",
        "\\": "_",
        ":": "_",
        "*": "_",
        "?": "_",
        '"': "_",
        "<": "_",
        ">": "_",
        "|": "_",
        " ": None,
    }
)


def sanitize_field(value: str) -> str:
    """Replace path-unsafe characters, drop spaces and cap the result at 100 bytes."""
    sanitized = value.translate(_SANITIZE)
    encoded = sanitized.encode("utf-8", "surrogatepass")
    if len(encoded) > MAX_SANITIZED_BYTES:
        sanitized = encoded[:MAX_SANITIZED_BYTES].decode("utf-8", "ignore")
    return sanitized


def _parse_int(value: str) -> int | None:
    if not _INTEGER.fullmatch(value):
        return None
    number = int(value)
    return number if _INT64_MIN <= number <= _INT64_MAX else None


def normalize_numeric_field(value: str, width: int, direction: str) -> str:
    """Zero-pad an integer so it sorts as text; non-integers are sanitized instead."""
    number = _parse_int(value)
    if number is None:
        return sanitize_field(value)
    if direction == "desc":
        number = DESC_MAX_VALUE - number
    return f"{number:0{width}d}"


def normalize_string_field(value: str, direction: str) -> str:
    """Return the sort key of a text field."""
    if direction == "desc":
        return f"~{value}"
    return sanitize_field(value)


def get_sort_key(stream: StreamInfo, sorting_key: str, direction: str) -> str:
    """Return the text key the stream is ordered by for the given setting."""
    if sorting_key == "tvg-id":
        return normalize_numeric_field(stream.tvg_id, 10, direction)
    if sorting_key in ("tvg-chno", "channel-id", "channel-number"):
        return normalize_numeric_field(stream.tvg_ch_no, 10, direction)
    if sorting_key in ("tvg-group", "group-title"):
        return normalize_string_field(stream.group, direction)
    if sorting_key == "tvg-type":
        return normalize_string_field(stream.tvg_type, direction)
    if sorting_key == "source":
        return normalize_numeric_field(stream.source_m3u, 5, direction)
    return normalize_string_field(stream.title, direction)


def merge_stream_info_attributes(base: StreamInfo, new: StreamInfo) -> StreamInfo:
    """Fill empty attributes of ``base`` from ``new``, union their URLs and keep the earliest source."""
    for attr in ("title", "tvg_id", "tvg_ch_no", "tvg_type", "logo_url", "group"):
        if not getattr(base, attr):
            setattr(base, attr, getattr(new, attr))

    for key, value in new.urls.items():
        if key in base.urls:
            base.urls[key].update(value)
        else:
            base.urls[key] = value

    if (new.source_m3u, new.source_index) < (base.source_m3u, base.source_index):
        base.source_m3u = new.source_m3u
        base.source_index = new.source_index
    return base


def _shard_of(title: str) -> int:
    digest = hashlib.blake2b(title.encode("utf-8", "surrogatepass"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % MUTEX_SHARDS


class SortingManager:
    """Collects streams by sanitized title into JSON shards and yields them in order."""

    def __init__(
        self,
        base_path: str | os.PathLike,
        sorting_key: str | None = None,
        sorting_direction: str | None = None,
    ) -> None:
        if sorting_key is None:
            sorting_key = os.environ.get("SORTING_KEY", "")
        if sorting_direction is None:
            sorting_direction = os.environ.get("SORTING_DIRECTION", "")
        self.sorting_key = sorting_key
        self.sorting_direction = sorting_direction.lower()
        self.base_path = os.fspath(base_path)
        try:
            os.makedirs(self.base_path, exist_ok=True)
        except OSError as exc:
            logger.error("%s", exc)

        self._locks = [threading.Lock() for _ in range(MUTEX_SHARDS)]
        self._indexes: list[set[str]] = [set() for _ in range(MUTEX_SHARDS)]
        self._buffers: list[dict[str, dict[str, Any]]] = [{} for _ in range(MUTEX_SHARDS)]

    def __enter__(self) -> SortingManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _shard_path(self, shard: int) -> str:
        return os.path.join(self.base_path, SHARD_FILE_TEMPLATE.format(shard))

    def add(self, stream: StreamInfo) -> None:
        """Record a stream, merging it into any earlier stream with the same title."""
        shard = _shard_of(stream.title)
        key = sanitize_field(stream.title)
        with self._locks[shard]:
            index = self._indexes[shard]
            if key in index:
                self._handle_existing(shard, key, stream)
                return
            if os.path.exists(self._shard_path(shard)):
                self._load_shard(shard)
                if key in index:
                    self._handle_existing(shard, key, stream)
                    return
            buffer = self._buffers[shard]
            buffer[key] = stream.to_dict()
            index.add(key)
            if len(buffer) >= BUFFER_LIMIT:
                self._flush_shard(shard)

    def _handle_existing(self, shard: int, key: str, stream: StreamInfo) -> None:
        buffer = self._buffers[shard]
        buffered = buffer.get(key)
        if buffered is not None:
            merged = merge_stream_info_attributes(StreamInfo.from_dict(buffered), stream)
            buffer[key] = merged.to_dict()
            return
        entries = self._read_shard(shard)
        existing = entries.get(key)
        entries[key] = merge_stream_info_attributes(existing, stream) if existing else stream
        self._write_shard(shard, entries)

    def _flush_shard(self, shard: int) -> None:
        buffer = self._buffers[shard]
        if not buffer:
            return
        try:
            entries = self._read_shard(shard)
        except (OSError, ValueError):
            entries = {}
        for key, data in buffer.items():
            entries[key] = StreamInfo.from_dict(data)
        self._write_shard(shard, entries)
        self._buffers[shard] = {}

    def _read_shard(self, shard: int) -> dict[str, StreamInfo]:
        try:
            with open(self._shard_path(shard), encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            raise ValueError(f"failed to decode shard {shard}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"failed to decode shard {shard}: not an object")
        try:
            return {
                key: StreamInfo.from_dict(value)
                for key, value in data.items()
                if value is not None
            }
        except ValueError as exc:
            raise ValueError(f"failed to decode shard {shard}: {exc}") from exc

    def _write_shard(self, shard: int, entries: dict[str, StreamInfo]) -> None:
        with open(self._shard_path(shard), "w", encoding="utf-8") as handle:
            json.dump(
                {key: stream.to_dict() for key, stream in entries.items()},
                handle,
                ensure_ascii=False,
            )
            handle.write("\n")

    def _load_shard(self, shard: int) -> None:
        self._indexes[shard].update(self._read_shard(shard))

    def sorted_entries(self) -> list[StreamInfo]:
        """Flush buffered streams and return every stream ordered by the sort key."""
        for shard in range(MUTEX_SHARDS):
            with self._locks[shard]:
                self._flush_shard(shard)

        keyed: list[tuple[str, StreamInfo]] = []
        for shard in range(MUTEX_SHARDS):
            for stream in self._read_shard(shard).values():
                keyed.append(
                    (get_sort_key(stream, self.sorting_key, self.sorting_direction), stream)
                )
        keyed.sort(key=lambda item: item[0])
        return [stream for _, stream in keyed]

    def close(self) -> None:
        """Remove the shard directory."""
        shutil.rmtree(self.base_path, ignore_errors=True)