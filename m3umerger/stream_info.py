"""The stream record shared by parsing, sorting and slugs."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# (JSON name, attribute name) in serialisation order; URLs are never serialised.
_JSON_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "title"),
    ("tvg_id", "tvg_id"),
    ("tvg_ch", "tvg_ch_no"),
    ("tvg_type", "tvg_type"),
    ("logo", "logo_url"),
    ("group", "group"),
    ("source_m3u", "source_m3u"),
    ("source_index", "source_index"),
)
_BY_NAME = dict(_JSON_FIELDS)
_BY_FOLDED_NAME = {name.lower(): attr for name, attr in _JSON_FIELDS}

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class StreamInfo:
    """One channel: its attributes, source position and known URLs per playlist."""

    title: str = ""
    tvg_id: str = ""
    tvg_ch_no: str = ""
    tvg_type: str = ""
    logo_url: str = ""
    group: str = ""
    urls: dict[str, dict[str, str]] = field(default_factory=dict)
    source_m3u: str = ""
    source_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the stream; URLs are left out."""
        return {name: getattr(self, attr) for name, attr in _JSON_FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StreamInfo:
        """Build a stream from its JSON form.

        Keys match exactly or case-insensitively, unknown keys and nulls are
        ignored, and values of the wrong type raise ``ValueError``.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"cannot build StreamInfo from {type(data).__name__}")
        values: dict[str, Any] = {}
        for key, value in data.items():
            attr = _BY_NAME.get(key) or _BY_FOLDED_NAME.get(str(key).lower())
            if attr is None or value is None:
                continue
            if attr == "source_index":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"source_index must be an integer, got {value!r}")
                if not _INT64_MIN <= value <= _INT64_MAX:
                    raise ValueError(f"source_index out of range: {value}")
            elif not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {value!r}")
            values[attr] = value
        return cls(**values)