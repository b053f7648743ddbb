"""Include and exclude filters on stream groups and titles."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from m3umerger.env import get_filters
from m3umerger.stream_info import StreamInfo

logger = logging.getLogger(__name__)


def _compile(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            logger.debug("Error compiling regex %s: %s", pattern, exc)
    return tuple(compiled)


def _match_any(patterns: Iterable[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


@dataclass(frozen=True)
class StreamFilter:
    """Decides which streams are kept; includes take precedence over excludes."""

    include_groups: tuple[re.Pattern[str], ...] = ()
    include_titles: tuple[re.Pattern[str], ...] = ()
    exclude_groups: tuple[re.Pattern[str], ...] = ()
    exclude_titles: tuple[re.Pattern[str], ...] = ()

    @classmethod
    def from_env(cls) -> StreamFilter:
        """Build a filter from ``INCLUDE_GROUPS_n``, ``INCLUDE_TITLE_n``,
        ``EXCLUDE_GROUPS_n`` and ``EXCLUDE_TITLE_n``; invalid patterns are skipped."""
        return cls(
            include_groups=_compile(get_filters("INCLUDE_GROUPS")),
            include_titles=_compile(get_filters("INCLUDE_TITLE")),
            exclude_groups=_compile(get_filters("EXCLUDE_GROUPS")),
            exclude_titles=_compile(get_filters("EXCLUDE_TITLE")),
        )

    def matches(self, stream: StreamInfo) -> bool:
        """Tell whether the stream passes the filter."""
        has_includes = bool(self.include_groups or self.include_titles)
        if not (has_includes or self.exclude_groups or self.exclude_titles):
            return True
        if _match_any(self.include_groups, stream.group) or _match_any(
            self.include_titles, stream.title
        ):
            return True
        if _match_any(self.exclude_groups, stream.group) or _match_any(
            self.exclude_titles, stream.title
        ):
            return False
        return not has_includes