import base64
import os

import pytest

from m3umerger.downloader import LineDetails
from m3umerger.env import reset_caches
from m3umerger.lookup import (
    clear_processed_m3us,
    get_stream_by_slug,
    load_stream_urls,
    parse_stream_info_by_slug,
)
from m3umerger.parser import parse_line
from m3umerger.slug import encode_slug
from m3umerger.stream_info import StreamInfo


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("M3U_URL_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("TITLE_SUBSTR_FILTER", raising=False)
    reset_caches()
    yield
    reset_caches()


def _b64(text):
    return base64.b64encode(text.encode()).decode()


def test_slug_round_trip_collects_urls_from_every_playlist(tmp_path, monkeypatch):
    monkeypatch.setenv("M3U_URL_1", "file:///unused-1.m3u")
    monkeypatch.setenv("M3U_URL_2", "file:///unused-2.m3u")
    line = '#EXTINF:-1 group-title="News",CNN US'
    s1 = parse_line(line, LineDetails("http://example.com/cnn-a", 4), "1", tmp_path)
    s2 = parse_line(line, LineDetails("http://example.com/cnn-b", 6), "2", tmp_path)

    result = parse_stream_info_by_slug(encode_slug(s1), tmp_path)

    assert result.title == "CNN US"
    assert result.group == "News"
    assert result.urls == {"1": s1.urls["1"], "2": s2.urls["2"]}


def test_load_stream_urls_reads_and_skips_files(tmp_path):
    shard = tmp_path / "abc"
    shard.mkdir()
    title = _b64("Test")
    (shard / f"{title}_1|plain").write_text(_b64("http://example.com/plain"))
    (shard / f"{title}_1|indexed").write_text("7:::" + _b64("http://example.com/indexed"))
    (shard / f"{title}_1|broken").write_text("3:::not base64!")
    (shard / f"{title}_1-nopipe").write_text(_b64("http://example.com/ignored"))

    stream = StreamInfo(title="Test")
    found = load_stream_urls(stream, "1", tmp_path)

    assert found == {
        "plain": "0:::http://example.com/plain",
        "indexed": "7:::http://example.com/indexed",
    }
    assert stream.urls == {"1": found}


def test_load_stream_urls_with_no_files_gives_empty_mapping(tmp_path):
    stream = StreamInfo(title="Nothing")
    assert load_stream_urls(stream, "3", tmp_path) == {}
    assert stream.urls == {"3": {}}


def test_invalid_slug_raises(tmp_path):
    with pytest.raises(ValueError):
        parse_stream_info_by_slug("!!not-a-slug!!", tmp_path)


def test_get_stream_by_slug_wraps_error(tmp_path):
    with pytest.raises(ValueError, match="error parsing stream info"):
        get_stream_by_slug("!!not-a-slug!!", tmp_path)


def test_get_stream_by_slug_returns_stream(tmp_path, monkeypatch):
    monkeypatch.setenv("M3U_URL_1", "file:///unused.m3u")
    stream = parse_line("#EXTINF:-1,Solo", LineDetails("http://example.com/solo", 0), "1", tmp_path)
    result = get_stream_by_slug(encode_slug(stream), tmp_path)
    assert result.title == "Solo"
    assert result.urls == stream.urls


def test_clear_processed_m3us_removes_directory(tmp_path):
    processed = tmp_path / "processed"
    (processed / "nested").mkdir(parents=True)
    (processed / "nested" / "a.m3u").write_text("#EXTM3U\n")
    clear_processed_m3us(processed)
    assert not processed.exists()
    clear_processed_m3us(processed)
    assert not processed.exists()
    assert tmp_path.exists()