"""Checksums and client fingerprints."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def calculate_checksum(data: str | bytes) -> str:
    """Return the hex SHA-256 digest of ``data``."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def generate_fingerprint(remote_addr: str, headers: Mapping[str, str], path: str) -> str:
    """Return a stable identifier for a client from its address, headers and path."""
    lowered = {key.lower(): value for key, value in headers.items()}
    ip = remote_addr.split(":")[0]
    forwarded = lowered.get("x-forwarded-for", "")
    if forwarded:
        ip = forwarded
    data = "|".join(
        (
            ip,
            lowered.get("user-agent", ""),
            lowered.get("accept", ""),
            lowered.get("accept-language", ""),
            path,
        )
    )
    logger.debug("Generating fingerprint from: %s", data)
    return calculate_checksum(data)