"""Data models used throughout the inlining pipeline."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import InlineConfig

if TYPE_CHECKING:
    from .loader import ResourceLoader

logger = logging.getLogger("html_inliner")

Patch = Callable[[], None]


@dataclass(frozen=True)
class Resource:
    """Bytes fetched for a reference together with their MIME type."""

    mime: str
    data: bytes


@dataclass(frozen=True)
class Handler:
    """A CSS selector and the transform applied to every node it matches."""

    name: str
    selector: str
    transform: Callable[[Tag, "Job"], Optional[Patch]]


class JobLogAdapter(logging.LoggerAdapter):
    """Prefix records with the worker thread name and the job number."""

    def process(self, msg, kwargs):
        thread = threading.current_thread().name
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("job", self.extra["job"])
        extra.setdefault("worker", thread)
        kwargs["extra"] = extra
        return f"[ THREAD #{thread} / JOB #{self.extra['job']} ] {msg}", kwargs


@dataclass
class Job:
    """Context handed to a handler: configuration, loader and logging tags.

    ``pool`` is the dispatch executor when the job runs on one; nested fetch
    work is queued there instead of on a pool of its own.
    """

    id: int
    config: InlineConfig
    loader: "ResourceLoader"
    document: BeautifulSoup
    pool: Optional[Executor] = field(default=None, repr=False)
    log: JobLogAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.log = JobLogAdapter(logger, {"job": self.id})
