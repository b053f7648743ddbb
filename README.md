# m3umerger

A library that merges several M3U playlists into a single playlist.
Channels are read from local files or remote URLs, filtered by group and
title, merged by title so that one entry stands for every source URL of that
channel, sorted, and written out as one M3U file.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Sources and behaviour are set through environment variables:

| Variable | Meaning |
| --- | --- |
| `M3U_URL_<index>` | A source playlist: `http(s)://...` or `file:///path/to/list.m3u` |
| `M3U_MAX_CONCURRENCY_<index>` | Connections allowed for a source (default 1), used by `ConcurrencyManager` |
| `INCLUDE_GROUPS_<n>`, `INCLUDE_TITLE_<n>` | Regular expressions; a matching channel is kept |
| `EXCLUDE_GROUPS_<n>`, `EXCLUDE_TITLE_<n>` | Regular expressions; a matching channel is dropped unless an include matched |
| `TITLE_SUBSTR_FILTER` | Regular expression whose matches are removed from every channel title |
| `SORTING_KEY` | `tvg-id`, `tvg-chno` (or `channel-id`, `channel-number`), `tvg-group` (or `group-title`), `tvg-type`, `source`; anything else sorts by title |
| `SORTING_DIRECTION` | `desc` for descending; anything else is ascending |
| `BASE_URL` | Base address written into the generated stream URLs; overrides the host given to the processor |
| `USER_AGENT` | User-Agent sent when downloading sources (and kept across redirects) |

`<n>` must be an integer. When include patterns are set, channels that match
none of them are dropped. The playlist indexes and filter patterns are read
once and cached; `m3umerger.env.reset_caches()` makes them be read again.

## Merging playlists

```python
from m3umerger.processor import M3UProcessor

processor = M3UProcessor(
    result_path="data/processed/playlist.m3u",
    streams_dir="data/streams",
    sort_dir="data/sort",
    sources_dir="data/sources",
)
processor.run(host="localhost:8080", secure=False, timeout=60)

print(processor.get_count(), "streams merged")
print("playlist written to", processor.get_result_path())
```

The directories are used as follows:

- `result_path` receives the merged playlist, starting with `#EXTM3U`.
- `streams_dir` holds a small index file for every source URL seen, so that
  a channel's URLs can be found again later.
- `sort_dir` holds temporary JSON shards while channels are merged and
  sorted; it is removed when processing finishes.
- `sources_dir` receives a copy of every remote playlist, saved as
  `<index>.m3u`.

A `StreamFilter` may be passed as `stream_filter`; otherwise one is built
from the environment with `StreamFilter.from_env()`. Sources that cannot be
opened or fetched are logged and skipped.

Each entry in the result points at `<base>/p/<sub-path>/<slug>`, where
`<sub-path>` is the directory part of a source URL's path and the source's
file extension is appended unless it is an `.m3u` one. The slug is a
zstd-compressed, URL-safe encoding of the channel's attributes
(`m3umerger.slug.encode_slug` / `decode_slug`). Turn it back into a
`StreamInfo` carrying every indexed source URL with:

```python
from m3umerger.lookup import get_stream_by_slug

stream = get_stream_by_slug(slug, "data/streams")
print(stream.title, stream.urls)
```

`m3umerger.parser.sort_stream_sub_urls` orders a playlist's URLs by their
position in the source file.

## Connection limits

```python
from m3umerger.concurrency import ConcurrencyManager

manager = ConcurrencyManager()
manager.update_concurrency("1", True)
if manager.check_concurrency("1"):
    print("source 1 is at its limit")
manager.update_concurrency("1", False)
```

`get_concurrency_status` returns `(current, maximum, free slots)`.

## Other helpers

- `m3umerger.hashing`: `calculate_checksum` (SHA-256 hex) and
  `generate_fingerprint` for identifying a client from its address, headers
  and path.
- `m3umerger.httputil`: `custom_http_request`, `determine_base_url`,
  `is_an_m3u8_media` and URL path helpers.
- `m3umerger.downloader`: `stream_source`, `stream_local_file` and
  `stream_remote_url` yield a playlist's lines as `LineDetails`, raising
  `DownloadError` on failure.

## What this package does not do

It has no command-line program, no HTTP server and no stream proxy: it
writes the merged playlist and can resolve its slugs, but nothing here
serves the playlist or relays the streams behind the generated URLs. Nor
does it schedule updates; call `M3UProcessor.run` whenever the playlist
should be rebuilt.