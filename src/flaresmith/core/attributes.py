"""Helpers reading BeautifulSoup attribute values."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, cast

from bs4.element import Tag


def coerce_attribute(value: Any) -> str | None:
    """Normalise a BeautifulSoup attribute value to a string when possible."""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(value, Iterable):
        items = [item for item in value if isinstance(item, str)]
        if items:
            return " ".join(items)
    return None


def gather_classes(value: Any) -> list[str]:
    """Return the classes held by a ``class`` attribute value."""
    if isinstance(value, str):
        return value.split()
    if isinstance(value, Iterable) and not isinstance(value, (bytes, bytearray)):
        return [cast(str, item) for item in value if isinstance(item, str)]
    return []


def has_class(element: Tag, *names: str) -> bool:
    """Return whether ``element`` carries any of the given classes (case-insensitive)."""
    wanted = {name.lower() for name in names}
    return any(css.lower() in wanted for css in gather_classes(element.get("class")))


__all__ = ["coerce_attribute", "gather_classes", "has_class"]
