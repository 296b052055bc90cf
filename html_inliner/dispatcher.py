"""Match handlers against a document and apply them with a worker pool."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import InlineConfig
from .handlers import build_handlers
from .loader import ResourceLoader
from .models import Handler, Job, Patch
from .utils import format_node

logger = logging.getLogger("html_inliner")


@dataclass
class DispatchMetrics:
    """Counts and timing for a single dispatch run."""

    jobs: int
    patches: int
    skipped: int
    total_seconds: float


@dataclass
class _Scheduled:
    job: Job
    node: Tag
    handler: Handler


def collect_jobs(
    document: BeautifulSoup,
    handlers: Sequence[Handler],
    config: InlineConfig,
    loader: ResourceLoader,
) -> List[_Scheduled]:
    """Snapshot every (node, handler) match before anything is mutated."""
    scheduled: List[_Scheduled] = []
    for handler in handlers:
        for node in document.select(handler.selector):
            job = Job(len(scheduled) + 1, config, loader, document)
            scheduled.append(_Scheduled(job, node, handler))
    return scheduled


def _prepare(item: _Scheduled) -> Optional[Patch]:
    item.job.log.debug("%s %s", item.handler.name, format_node(item.node))
    return item.handler.transform(item.node, item.job)


def _prepare_all(scheduled: List[_Scheduled], threads: int) -> List[Optional[Patch]]:
    if threads <= 1 or len(scheduled) <= 1:
        return [_prepare(item) for item in scheduled]

    # Sized at ``threads`` rather than the job count: CSS jobs queue their
    # fetch helpers on this same pool.
    with ThreadPoolExecutor(max_workers=threads, thread_name_prefix="inliner") as executor:
        for item in scheduled:
            item.job.pool = executor
        futures: List[Future] = [executor.submit(_prepare, item) for item in scheduled]
        try:
            return [future.result() for future in futures]
        except BaseException:
            for future in futures:
                future.cancel()
            raise


def run_handlers(
    document: BeautifulSoup,
    handlers: Sequence[Handler],
    config: InlineConfig,
    loader: Optional[ResourceLoader] = None,
) -> DispatchMetrics:
    """Run every handler on every node it selects, mutating ``document`` in place.

    Transforms run in parallel and only read the tree; the patches they return
    are applied afterwards on the calling thread, in match order. A
    ``ContractViolation`` from any transform aborts the run before any patch
    is applied.
    """
    start = time.perf_counter()
    if loader is None:
        loader = ResourceLoader(
            config.base_url,
            timeout=config.timeout,
            retries=config.retries,
            user_agent=config.user_agent,
        )

    scheduled = collect_jobs(document, handlers, config, loader)
    logger.info("Dispatching %d job(s) on %d thread(s)", len(scheduled), config.threads)
    patches = _prepare_all(scheduled, config.threads)

    applied = 0
    skipped = 0
    for item, patch in zip(scheduled, patches):
        if patch is None:
            continue
        if item.node.parent is None:
            item.job.log.debug("node already replaced, dropping %s patch", item.handler.name)
            skipped += 1
            continue
        patch()
        applied += 1

    elapsed = time.perf_counter() - start
    logger.info(
        "Finished in %.2fs (%d job(s), %d patched, %d skipped)",
        elapsed,
        len(scheduled),
        applied,
        skipped,
    )
    return DispatchMetrics(
        jobs=len(scheduled),
        patches=applied,
        skipped=skipped,
        total_seconds=elapsed,
    )


def inline_document(
    document: BeautifulSoup,
    config: InlineConfig,
    loader: Optional[ResourceLoader] = None,
) -> DispatchMetrics:
    return run_handlers(document, build_handlers(config), config, loader)


def inline_html(html: str, config: InlineConfig, loader: Optional[ResourceLoader] = None) -> str:
    """Parse ``html``, embed its resources and serialize the result."""
    document = BeautifulSoup(html, "html.parser")
    inline_document(document, config, loader)
    return str(document)
