"""Command-line entry point for the HTML inliner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from .config import (
    DEFAULT_RETRIES,
    DEFAULT_THREADS,
    DEFAULT_TIMEOUT,
    InlineConfig,
    base_url_for,
    source_url,
)
from .dispatcher import inline_document
from .errors import FetchError, InlineError, InputError
from .loader import ResourceLoader
from .utils import TRACE

logger = logging.getLogger("html_inliner.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="html-inliner",
        description="Embed stylesheets, scripts, images and favicons into a single HTML file.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Input file or URL (index.html, https://example.com/path/); stdin if omitted",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output file, stdout if not present",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose mode (-v, -vv, -vvv)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Silence all output",
    )
    parser.add_argument(
        "-j",
        "--threads",
        type=int,
        default=DEFAULT_THREADS,
        help="Number of threads (use -j1 to turn parallelism off)",
    )
    parser.add_argument(
        "-J",
        "--no-js",
        action="store_true",
        help="Do not process/embed JavaScript",
    )
    parser.add_argument(
        "-C",
        "--no-css",
        action="store_true",
        help="Do not process/embed CSS stylesheets",
    )
    parser.add_argument(
        "-I",
        "--no-img",
        action="store_true",
        help="Do not process/embed images",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help="Extra attempts for requests that fail at the transport level",
    )
    args = parser.parse_args(argv)
    if args.threads < 1:
        parser.error("--threads must be at least 1")
    return args


def log_level(verbose: int, quiet: bool) -> int:
    if quiet:
        return logging.CRITICAL + 1
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    if verbose == 2:
        return logging.DEBUG
    return TRACE


def read_input(source: Optional[str], loader: ResourceLoader) -> str:
    """Load the document from a URL/path, or from stdin when it is piped."""
    if source is not None:
        try:
            return loader.load_string(source)
        except FetchError as exc:
            raise InputError(f"cannot read {source}: {exc}") from exc
    if sys.stdin is not None and not sys.stdin.isatty():
        return sys.stdin.read()
    raise InputError("No file to process provided.")


def write_output(html: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(html)
        sys.stdout.flush()
        return
    output.write_text(html, encoding="utf-8")
    logger.info("Saved HTML to %s", output)


def run(args: argparse.Namespace) -> None:
    source = source_url(args.input) if args.input else None
    config = InlineConfig(
        base_url=base_url_for(source),
        threads=args.threads,
        timeout=args.timeout,
        retries=args.retries,
        embed_js=not args.no_js,
        embed_css=not args.no_css,
        embed_images=not args.no_img,
    )
    loader = ResourceLoader(
        config.base_url,
        timeout=config.timeout,
        retries=config.retries,
        user_agent=config.user_agent,
    )

    html = read_input(source, loader)
    document = BeautifulSoup(html, "html.parser")
    metrics = inline_document(document, config, loader)
    logger.debug(
        "Processed %s -> %d job(s) in %.2fs",
        source or "<stdin>",
        metrics.jobs,
        metrics.total_seconds,
    )
    write_output(str(document), args.output)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=log_level(args.verbose, args.quiet),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    try:
        run(args)
    except InlineError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
