"""Internal helpers shared across handler and emitter modules."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from bs4.element import Tag

from flaresmith.core.attributes import coerce_attribute


_PIXELS = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:px)?\s*$", re.IGNORECASE)
_STYLE_DIMENSION = re.compile(r"(?<![-\w])(width|height)\s*:\s*(\d+(?:\.\d+)?)px", re.IGNORECASE)


def pixel_dimension(element: Tag, attribute: str) -> int | None:
    """Return an integer pixel size from an attribute or inline style."""
    raw = coerce_attribute(element.get(attribute))
    if raw:
        match = _PIXELS.match(raw)
        if match:
            return int(float(match.group(1)))
    style = coerce_attribute(element.get("style")) or ""
    for name, value in _STYLE_DIMENSION.findall(style):
        if name.lower() == attribute:
            return int(float(value))
    return None


def is_external_target(url: str) -> bool:
    """Return whether ``url`` points outside the authored document set."""
    try:
        result = urlparse(url)
    except ValueError:
        return False
    return bool(result.scheme) and result.scheme not in {"file"}


__all__ = ["is_external_target", "pixel_dimension"]
