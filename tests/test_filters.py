import os
import re

import pytest

from m3umerger.env import reset_caches
from m3umerger.filters import StreamFilter
from m3umerger.stream_info import StreamInfo

_PREFIXES = ("INCLUDE_GROUPS_", "INCLUDE_TITLE_", "EXCLUDE_GROUPS_", "EXCLUDE_TITLE_")

CNN = StreamInfo(title="CNN US", group="News")
BBC = StreamInfo(title="BBC News", group="News")
ESPN = StreamInfo(title="ESPN US", group="Sports")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith(_PREFIXES):
            monkeypatch.delenv(key)
    reset_caches()
    yield
    reset_caches()


def test_no_filters_keeps_everything():
    stream_filter = StreamFilter.from_env()
    assert [stream_filter.matches(s) for s in (CNN, BBC, ESPN)] == [True, True, True]


def test_include_group_keeps_only_that_group(monkeypatch):
    monkeypatch.setenv("INCLUDE_GROUPS_1", "^News$")
    stream_filter = StreamFilter.from_env()
    assert stream_filter.matches(CNN)
    assert not stream_filter.matches(ESPN)


def test_exclude_title_drops_matches(monkeypatch):
    monkeypatch.setenv("EXCLUDE_TITLE_1", "ESPN")
    stream_filter = StreamFilter.from_env()
    assert not stream_filter.matches(ESPN)
    assert stream_filter.matches(CNN)


def test_include_wins_over_exclude(monkeypatch):
    monkeypatch.setenv("INCLUDE_TITLE_1", "CNN")
    monkeypatch.setenv("EXCLUDE_GROUPS_1", "News")
    stream_filter = StreamFilter.from_env()
    assert stream_filter.matches(CNN)
    assert not stream_filter.matches(BBC)
    assert not stream_filter.matches(ESPN)


def test_non_integer_suffix_is_ignored(monkeypatch):
    monkeypatch.setenv("INCLUDE_GROUPS_X", "News")
    stream_filter = StreamFilter.from_env()
    assert stream_filter.include_groups == ()
    assert stream_filter.matches(ESPN)


def test_invalid_pattern_is_skipped(monkeypatch):
    monkeypatch.setenv("EXCLUDE_TITLE_1", "(")
    monkeypatch.setenv("EXCLUDE_TITLE_2", "ESPN")
    stream_filter = StreamFilter.from_env()
    assert [p.pattern for p in stream_filter.exclude_titles] == ["ESPN"]
    assert not stream_filter.matches(ESPN)
    assert stream_filter.matches(CNN)


def test_direct_construction():
    stream_filter = StreamFilter(exclude_groups=(re.compile("Sports"),))
    assert not stream_filter.matches(ESPN)
    assert stream_filter.matches(BBC)