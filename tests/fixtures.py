"""Sample payloads and helpers shared by the test modules."""

from __future__ import annotations

import base64
import threading
import time
from collections import Counter

from html_inliner.loader import ResourceLoader

PADDING = b"\x00" * 32

PNG = b"\x89PNG\r\n\x1a\n" + PADDING
GIF = b"GIF89a" + PADDING
BMP = b"BM" + PADDING
TIF = b"II*\x00" + PADDING
JPG = b"\xff\xd8\xff\xe0" + PADDING
ICO = b"\x00\x00\x01\x00" + PADDING

ASSET_CSS = "p {\n    color: red;\n}\n"


def data_uri(mime: str, data: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


class CountingLoader(ResourceLoader):
    """Loader that records how often each URL was fetched."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls: Counter = Counter()
        self._calls_lock = threading.Lock()

    def load_url(self, url, log=None):
        with self._calls_lock:
            self.calls[url] += 1
        if log is None:
            return super().load_url(url)
        return super().load_url(url, log)


class SlowLoader(CountingLoader):
    """Loader that holds every fetch for ``delay`` seconds and records the peak
    number of fetches in flight and of live threads."""

    def __init__(self, *args, delay: float = 0.02, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.delay = delay
        self.in_flight = 0
        self.peak_in_flight = 0
        self.peak_threads = 0

    def load_url(self, url, log=None):
        with self._calls_lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            self.peak_threads = max(self.peak_threads, threading.active_count())
        try:
            time.sleep(self.delay)
            return super().load_url(url, log)
        finally:
            with self._calls_lock:
                self.in_flight -= 1
