"""Merging of every configured playlist into one sorted output playlist."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor

from m3umerger.downloader import DownloadError, stream_source
from m3umerger.env import get_m3u_indexes
from m3umerger.filters import StreamFilter
from m3umerger.httputil import determine_base_url
from m3umerger.parser import format_stream_entry, parse_line
from m3umerger.sorting import SortingManager
from m3umerger.stream_info import StreamInfo

logger = logging.getLogger(__name__)

MIN_PROGRESS_BATCH = 100


def _progress_batch(count: int) -> int:
    """Return the power of ten at or below ``count``, at least 100."""
    return max(MIN_PROGRESS_BATCH, 10 ** (len(str(count)) - 1))


def _create_result_file(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8"):
        pass


class M3UProcessor:
    """Reads every ``M3U_URL_*`` source, merges streams by title and writes one playlist."""

    def __init__(
        self,
        result_path: str | os.PathLike,
        streams_dir: str | os.PathLike,
        sort_dir: str | os.PathLike,
        sources_dir: str | os.PathLike,
        stream_filter: StreamFilter | None = None,
    ) -> None:
        self._result_path = os.fspath(result_path)
        self._streams_dir = os.fspath(streams_dir)
        self._sort_dir = os.fspath(sort_dir)
        self._sources_dir = os.fspath(sources_dir)
        self._filter = stream_filter
        _create_result_file(self._result_path)

        self._stream_count = 0
        self._processed = 0
        self._count_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._done = threading.Event()

    def start(self, host: str | None = None, secure: bool = False) -> None:
        """Process every source and write the merged playlist; blocks until done."""
        with self._run_lock:
            self._done.clear()
            with self._count_lock:
                self._processed = 0
            base_url = determine_base_url(host, secure)
            stream_filter = self._filter if self._filter is not None else StreamFilter.from_env()
            indexes = get_m3u_indexes()

            sorter = SortingManager(self._sort_dir)
            try:
                with ThreadPoolExecutor(max_workers=max(1, len(indexes))) as pool:
                    futures = [
                        pool.submit(self._handle_source, index, sorter, stream_filter)
                        for index in indexes
                    ]
                    for future in futures:
                        future.result()
                with self._count_lock:
                    processed = self._processed
                logger.info("Completed processing %d total streams", processed)
                self._compile(base_url, sorter)
            finally:
                sorter.close()
            self._done.set()

    def wait(self, timeout: float | None = None) -> None:
        """Block until the merged playlist is written.

        Raises ``TimeoutError`` if that does not happen within ``timeout`` seconds.
        """
        if not self._done.wait(timeout):
            raise TimeoutError("timed out waiting for playlist processing")

    def run(self, host: str | None = None, secure: bool = False, timeout: float | None = None) -> None:
        """Process all sources, then wait for the result."""
        self.start(host, secure)
        self.wait(timeout)

    def get_count(self) -> int:
        """Return how many streams have been added to the merged playlist."""
        with self._count_lock:
            return self._stream_count

    def get_result_path(self) -> str:
        """Return the path of the merged playlist."""
        return self._result_path

    def _handle_source(
        self, m3u_index: str, sorter: SortingManager, stream_filter: StreamFilter
    ) -> None:
        current = ""
        try:
            for info in stream_source(m3u_index, self._sources_dir):
                line = info.content.strip()
                if line.startswith("#EXTINF:"):
                    current = line
                elif current and not line.startswith("#"):
                    stream = parse_line(current, info, m3u_index, self._streams_dir)
                    if stream is not None and stream_filter.matches(stream):
                        self._add_stream(stream, sorter)
                    current = ""
        except DownloadError as exc:
            logger.error("Error processing M3U %s: %s", m3u_index, exc)

    def _add_stream(self, stream: StreamInfo, sorter: SortingManager) -> None:
        if stream.urls:
            with self._count_lock:
                self._stream_count += 1
            try:
                sorter.add(stream)
            except (OSError, ValueError) as exc:
                logger.error("Error while processing stream: %s", exc)

        with self._count_lock:
            self._processed += 1
            processed = self._processed
        if processed % _progress_batch(processed) == 0:
            logger.info("Processed %d streams so far", processed)

    def _compile(self, base_url: str, sorter: SortingManager) -> None:
        try:
            entries = sorter.sorted_entries()
        except (OSError, ValueError) as exc:
            logger.error("Error streaming sorted entries: %s", exc)
            entries = []
        with open(self._result_path, "w", encoding="utf-8") as handle:
            handle.write("#EXTM3U\n")
            for entry in entries:
                handle.write(format_stream_entry(base_url, entry))