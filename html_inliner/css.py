"""Inline ``@import`` directives and ``url()`` references found in CSS text."""

from __future__ import annotations

import queue
import re
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Set, Tuple

from .datauri import make_data_uri
from .errors import FetchError
from .models import Job
from .utils import TRACE

RE_URL = re.compile(
    r"""
    url\(["']?          # url(, url(", url('
    (?P<url>[^"')]+?)   # resource location
    ["']?\)             # closing url() bracket
    """,
    re.VERBOSE,
)

RE_IMPORT = re.compile(
    r"""
    @import\s+          # @import
    (?:url\(["']?)?     # url(, url(", url('
    ["']                # not url(), just "string" or 'string'
    (?P<url>[^"')]+)    # resource location
    ["']                # closing quote
    \)?                 # maybe closing url() bracket
    \s*                 # maybe spaces before media queries or ;
    (?P<media>[^;\n]*)  # media queries
    ;                   # end
    """,
    re.VERBOSE,
)


def find_imports(css: str) -> List[Tuple[str, str]]:
    """Return ``(url, media)`` for every ``@import`` in document order."""
    return [(m.group("url"), m.group("media")) for m in RE_IMPORT.finditer(css)]


def find_urls(css: str) -> List[str]:
    return [m.group("url") for m in RE_URL.finditer(css)]


def _build_table(
    urls: Set[str],
    fetch: Callable[[str], Optional[str]],
    job: Job,
) -> Dict[str, str]:
    """Run ``fetch`` once per unique url in parallel and collect the hits.

    The calling thread drains the url queue alongside up to ``threads - 1``
    helpers. On a dispatch job the helpers are queued on the dispatch pool, so
    the total number of fetching threads never exceeds ``config.threads``.
    """
    table: Dict[str, str] = {}
    lock = threading.Lock()
    pending: "queue.SimpleQueue[str]" = queue.SimpleQueue()
    for url in sorted(urls):
        pending.put(url)

    def drain() -> None:
        while True:
            try:
                url = pending.get_nowait()
            except queue.Empty:
                return
            value = fetch(url)
            if value is not None:
                with lock:
                    table[url] = value

    helpers = min(job.config.threads, len(urls)) - 1
    if helpers <= 0:
        drain()
    elif job.pool is not None:
        _drain_with(job.pool, drain, helpers)
    else:
        prefix = f"{threading.current_thread().name}-css"
        with ThreadPoolExecutor(max_workers=helpers, thread_name_prefix=prefix) as executor:
            _drain_with(executor, drain, helpers)
    return table


def _drain_with(executor: Executor, drain: Callable[[], None], helpers: int) -> None:
    futures: List[Future] = [executor.submit(drain) for _ in range(helpers)]
    drain()
    # The queue is empty now: helpers still waiting for a worker are dropped,
    # running ones finish their current fetch.
    for future in futures:
        if not future.cancel():
            future.result()


def _dump(table: Dict[str, str], job: Job, label: str) -> None:
    if job.log.isEnabledFor(TRACE):
        job.log.log(TRACE, "%s\n%s", label, "\n".join(f"{k!r}: {v!r}" for k, v in table.items()))


def rewrite_imports(css: str, job: Job) -> str:
    """Replace each ``@import`` with the stylesheet it points at."""
    urls = {url for url, _ in find_imports(css)}
    if not urls:
        return css
    for url in sorted(urls):
        job.log.info("found @import %s", url)

    def fetch(url: str) -> Optional[str]:
        job.log.debug("downloading %s", url)
        try:
            return job.loader.load_string(url, job.log)
        except FetchError as exc:
            job.log.debug("cannot import %s: %s", url, exc)
            return None

    contents = _build_table(urls, fetch, job)
    _dump(contents, job, "@import table")

    def replace(match: re.Match) -> str:
        content = contents.get(match.group("url"))
        if content is None:
            job.log.debug("leaving @import as is %s", match.group(0))
            return match.group(0)
        media = match.group("media")
        if media:
            return f"@media {media} {{\n{content}\n}}"
        return content

    return RE_IMPORT.sub(replace, css)


def rewrite_urls(css: str, job: Job) -> str:
    """Replace each ``url()`` argument with a data URI; failures keep the original text."""
    urls = set(find_urls(css))
    if not urls:
        return css

    def fetch(url: str) -> Optional[str]:
        encoded = make_data_uri(url, job)
        if encoded == url:
            return None
        return f"url({encoded})"

    replacements = _build_table(urls, fetch, job)
    _dump(replacements, job, "url() table")

    def replace(match: re.Match) -> str:
        replacement = replacements.get(match.group("url"))
        if replacement is None:
            job.log.debug("skipping %s", match.group(0))
            return match.group(0)
        job.log.debug("making data URI for %s", match.group(0))
        return replacement

    return RE_URL.sub(replace, css)


def rewrite_css(css: str, job: Job) -> str:
    """Expand imports first so url() references inside them are embedded too."""
    job.log.info("looking for @import's")
    css = rewrite_imports(css, job)
    job.log.info("looking for url()'s")
    return rewrite_urls(css, job)
