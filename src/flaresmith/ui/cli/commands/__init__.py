"""CLI command implementations exposed via `flaresmith.ui.cli`.

Each sibling module holds one Typer command function; the application in
:mod:`flaresmith.ui.cli.app` registers them under their command names.
"""

from __future__ import annotations

from .batch import batch
from .conditions import conditions
from .convert import convert
from .glossary import glossary


__all__ = ["batch", "conditions", "convert", "glossary"]
