"""Bounded concurrent conversion of whole Flare content trees."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path

from flaresmith.core.config import VariableMode
from flaresmith.core.diagnostics import record_event
from flaresmith.core.exceptions import InvalidOptionsError, exception_messages

from .service import ConversionResult, ConversionService, OptionsLike, coerce_options


logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS: frozenset[str] = frozenset({".htm", ".html", ".xhtml"})
SNIPPET_EXTENSION = ".flsnp"
DEFAULT_CONCURRENCY = 4


@dataclass(slots=True)
class BatchError:
    """Failure captured for a single input file."""

    path: Path
    message: str


@dataclass(slots=True)
class BatchResult:
    """Aggregated outcome of a batch run."""

    converted: int = 0
    skipped: int = 0
    failed: int = 0
    outputs: list[Path] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)
    results: dict[Path, ConversionResult] = field(default_factory=dict)
    variables_file: Path | None = None

    @property
    def total(self) -> int:
        return self.converted + self.skipped + self.failed

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_candidate(path: Path, *, include_snippets: bool) -> bool:
    if path.name.startswith("._"):
        return False
    suffix = path.suffix.lower()
    if suffix == SNIPPET_EXTENSION:
        return include_snippets
    return suffix in DOCUMENT_EXTENSIONS


def discover_inputs(root: Path, *, include_snippets: bool = False) -> list[Path]:
    """Return convertible documents below ``root`` in a stable order."""
    if root.is_file():
        return [root]
    return sorted(
        path
        for path in root.rglob("*")
        if path.is_file() and _is_candidate(path, include_snippets=include_snippets)
    )


def output_path_for(source: Path, input_root: Path, output_dir: Path, extension: str) -> Path:
    """Mirror ``source``'s location below ``input_root`` into ``output_dir``."""
    try:
        relative = source.relative_to(input_root)
    except ValueError:
        relative = Path(source.name)
    return (output_dir / relative).with_suffix(extension)


def _collect_sources(
    inputs: Path | str | Sequence[Path | str], *, include_snippets: bool
) -> tuple[Path, list[Path], int]:
    if isinstance(inputs, (str, Path)):
        root = Path(inputs)
        if root.is_dir():
            return root, discover_inputs(root, include_snippets=include_snippets), 0
        candidates = [root]
    else:
        candidates = [Path(item) for item in inputs]

    sources: list[Path] = []
    skipped = 0
    for candidate in candidates:
        if candidate.is_dir():
            sources.extend(discover_inputs(candidate, include_snippets=include_snippets))
        elif candidate.is_file() and _is_candidate(candidate, include_snippets=include_snippets):
            sources.append(candidate)
        else:
            skipped += 1
            logger.info("Skipping %s", candidate)

    if not sources:
        return Path.cwd(), [], skipped
    parents = [str(path.parent.resolve()) for path in sources]
    root = Path(os.path.commonpath(parents))
    return root, [path.resolve() for path in sources], skipped


async def convert_batch(
    inputs: Path | str | Sequence[Path | str],
    output_dir: Path | str,
    options: OptionsLike = None,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    include_snippets: bool = False,
    service: ConversionService | None = None,
) -> BatchResult:
    """Convert every input with at most ``concurrency`` conversions in flight.

    Each document is converted in a worker thread. A failing document is
    recorded in :attr:`BatchResult.errors` and never aborts its siblings.
    """
    if concurrency < 1:
        raise InvalidOptionsError("Batch concurrency must be a positive integer.")

    active = coerce_options(options)
    runner = service or ConversionService(active)
    target_dir = Path(output_dir)
    input_root, sources, skipped = _collect_sources(inputs, include_snippets=include_snippets)

    result = BatchResult(skipped=skipped)
    total = len(sources)
    semaphore = asyncio.Semaphore(concurrency)

    def convert_one(source: Path, target: Path) -> ConversionResult:
        converted = runner.convert_file(source, active)
        runner.write_result(converted, target, sidecar=False)
        return converted

    async def worker(source: Path) -> tuple[Path, Path, ConversionResult | Exception]:
        target = output_path_for(source, input_root, target_dir, active.format.extension)
        async with semaphore:
            try:
                outcome: ConversionResult | Exception = await asyncio.to_thread(
                    convert_one, source, target
                )
            except Exception as exc:  # noqa: BLE001 - isolate per-document failures
                outcome = exc
        return source, target, outcome

    combined: dict[str, str] = {}
    done = 0
    tasks = [asyncio.create_task(worker(source)) for source in sources]
    for future in asyncio.as_completed(tasks):
        source, target, outcome = await future
        done += 1
        if isinstance(outcome, Exception):
            message = "; ".join(exception_messages(outcome)) or type(outcome).__name__
            result.failed += 1
            result.errors.append(BatchError(path=source, message=message))
            runner.emitter.error(f"Failed to convert {source}: {message}", outcome)
        else:
            result.converted += 1
            result.outputs.append(target)
            result.results[source] = outcome
            combined.update(outcome.metadata.variables)
        record_event(
            runner.emitter,
            "batch_progress",
            {"done": done, "total": total, "source": str(source)},
        )

    result.outputs.sort()
    result.errors.sort(key=lambda error: error.path)

    if active.variables.mode is VariableMode.REFERENCE and combined:
        filename, payload = runner.render_variables_file(combined, active)
        sidecar = target_dir / filename
        sidecar.parent.mkdir(parents=True, exist_ok=True)
        sidecar.write_text(payload, encoding="utf-8")
        result.variables_file = sidecar

    return result


__all__ = [
    "DEFAULT_CONCURRENCY",
    "DOCUMENT_EXTENSIONS",
    "BatchError",
    "BatchResult",
    "convert_batch",
    "discover_inputs",
    "output_path_for",
]
