"""Small helpers shared by the loader, rewriter and dispatcher."""

from __future__ import annotations

import logging
from typing import Union

from bs4.element import Tag

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

Log = Union[logging.Logger, logging.LoggerAdapter]


def format_node(node: Tag) -> str:
    """Render a tag as ``<name key="value" />`` for log lines."""
    attrs = []
    for key, value in node.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs.append(f'{key}="{value}"')
    return f"<{node.name} {' '.join(attrs)} />"
