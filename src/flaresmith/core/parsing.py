"""HTML parsing entry points shared by documents and snippet fragments."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, FeatureNotFound

from .diagnostics import DiagnosticEmitter, record_event


# HTML parsers ignore ``/>`` on unknown elements, which would swallow the
# following content into the placeholder.
_SELF_CLOSING_MADCAP = re.compile(r"<(MadCap:[\w.-]+)((?:\s+[^<>]*?)?)\s*/>", re.IGNORECASE)
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)


def expand_self_closing_tags(html: str) -> str:
    """Rewrite ``<MadCap:x .../>`` into explicit open/close pairs."""
    return _SELF_CLOSING_MADCAP.sub(r"<\1\2></\1>", html)


def prepare_html(html: str) -> str:
    return expand_self_closing_tags(_XML_DECLARATION.sub("", html, count=1))


def parse_html(
    html: str,
    parser: str = "lxml",
    *,
    emitter: DiagnosticEmitter | None = None,
) -> BeautifulSoup:
    """Parse ``html`` with the preferred backend, falling back to ``html.parser``."""
    payload = prepare_html(html)
    try:
        return BeautifulSoup(payload, parser)
    except FeatureNotFound:
        if parser == "html.parser":
            raise
        record_event(emitter, "parser_fallback", {"preferred": parser, "fallback": "html.parser"})
        return BeautifulSoup(payload, "html.parser")


__all__ = ["expand_self_closing_tags", "parse_html", "prepare_html"]
