"""Clean-up of M3U attribute values."""

from __future__ import annotations

import logging
import os
import re

logger = logging.getLogger(__name__)


def general_parser(value: str) -> str:
    """Strip surrounding double quotes from a value that is wholly quoted."""
    if value.startswith('"') and value.endswith('"'):
        value = value.strip('"')
    return value


def tvg_name_parser(value: str) -> str:
    """Remove ``TITLE_SUBSTR_FILTER`` matches from a title, then unquote it."""
    pattern = os.environ.get("TITLE_SUBSTR_FILTER", "")
    if pattern:
        try:
            value = re.sub(pattern, "", value)
        except re.error as exc:
            logger.error("Error compiling character filter regex: %s", exc)
    return general_parser(value)


def tvg_id_parser(value: str) -> str:
    """Clean a ``tvg-id`` value."""
    return general_parser(value)


def tvg_ch_no_parser(value: str) -> str:
    """Clean a channel number value."""
    return general_parser(value)


def tvg_type_parser(value: str) -> str:
    """Clean a ``tvg-type`` value."""
    return general_parser(value)


def group_title_parser(value: str) -> str:
    """Clean a group title value."""
    return general_parser(value)


def tvg_logo_parser(value: str) -> str:
    """Clean a ``tvg-logo`` value."""
    return general_parser(value)