"""Module aggregation (reduce stage).

Turns a set of per-file analyses into one narrative for a folder, optionally
with a Mermaid diagram. Two context strategies are supported:

- map_reduce: the context is the concatenated per-file analyses
- structure: the context is the folder's file tree, each file annotated
  with the first line of its overview (no analysis details reach the model)

Files that failed, were too large, or fell beyond the file cap are listed
in the summary's diagnostics. Only a folder with zero usable analyses is
reported as empty, and in that case no aggregation request is made.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from horizon.analyzers.enumerator import FileEnumerator
from horizon.analyzers.file_analyzer import FileAnalyzer
from horizon.llm.client import CompletionGateway, GatewayExhausted
from horizon.llm.parsing import MalformedResponseError, parse_json_object, strip_code_fences
from horizon.llm.prompts import (
    build_aggregation_prompt,
    build_structure_prompt,
    get_aggregation_system_prompt,
)
from horizon.models.analysis import (
    AnalysisOutcome,
    ErrorKind,
    FileRecord,
    ModuleSummary,
)
from horizon.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class AggregationStrategy(Enum):
    """What the reduce request is given as context."""

    MAP_REDUCE = "map_reduce"
    STRUCTURE = "structure"


@dataclass
class AggregatorSettings:
    """Limits and output options for aggregation.

    Attributes:
        max_files: Files analyzed per folder; the rest are excluded
        max_file_bytes: Files larger than this are excluded unread
        max_context_chars: Bound on the reduce request's context
        max_workers: Concurrent per-file analyses (1 means serial)
        strategy: Context strategy for the reduce request
        with_diagram: Request a narrative/diagram pair instead of prose
    """

    max_files: int = 30
    max_file_bytes: int = 200_000
    max_context_chars: int = 50_000
    max_workers: int = 4
    strategy: AggregationStrategy = AggregationStrategy.MAP_REDUCE
    with_diagram: bool = True

    def __post_init__(self) -> None:
        """Validate limits."""
        if isinstance(self.strategy, str):
            self.strategy = AggregationStrategy(self.strategy)
        for name in ("max_files", "max_file_bytes", "max_context_chars", "max_workers"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive. Got: {getattr(self, name)}")


def render_structure_tree(outcomes: list[AnalysisOutcome]) -> str:
    """Render usable outcomes as an indented tree.

    Folders come before files and both are alphabetical within a level.
    Each file line carries the first line of its overview.
    """
    tree: dict = {}
    for outcome in outcomes:
        if not outcome.ok:
            continue
        parts = outcome.record.relative_path.split("/")
        node = tree
        for part in parts[:-1]:
            node = node.setdefault(f"{part}/", {})
        node[parts[-1]] = outcome

    lines: list[str] = []

    def walk(node: dict, depth: int) -> None:
        indent = "  " * depth
        folders = sorted(k for k, v in node.items() if isinstance(v, dict))
        files = sorted(k for k, v in node.items() if not isinstance(v, dict))
        for name in folders:
            lines.append(f"{indent}{name}")
            walk(node[name], depth + 1)
        for name in files:
            result = node[name].result
            lines.append(f"{indent}{name}: {result.summary_line}")

    walk(tree, 0)
    return "\n".join(lines)


class ModuleAggregator:
    """Produces a ModuleSummary for a folder."""

    def __init__(
        self,
        gateway: CompletionGateway,
        analyzer: FileAnalyzer,
        enumerator: FileEnumerator | None = None,
        settings: AggregatorSettings | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            gateway: Completion gateway for the reduce request
            analyzer: Per-file analyzer used when flattening a folder
            enumerator: File enumerator used when flattening a folder
            settings: Limits and output options
        """
        self.gateway = gateway
        self.analyzer = analyzer
        self.enumerator = enumerator or FileEnumerator()
        self.settings = settings or AggregatorSettings()

    def aggregate(
        self,
        folder_path: Path,
        outcomes: list[AnalysisOutcome] | None = None,
        cancel: CancellationToken | None = None,
    ) -> ModuleSummary:
        """Summarize a folder.

        When outcomes is None the folder is flattened and analyzed first
        (cache hits reuse earlier results, the rest run concurrently).

        Args:
            folder_path: Folder to summarize
            outcomes: Per-file outcomes to reduce, in enumeration order
            cancel: Token checked before the reduce request

        Returns:
            ModuleSummary (flagged empty if nothing usable was analyzed)
        """
        folder = Path(folder_path).resolve()
        diagnostics: list[str] = []
        excluded: list[str] = []

        if outcomes is None:
            outcomes = self.analyze_folder_files(folder, diagnostics, excluded, cancel)

        if cancel is not None:
            cancel.raise_if_cancelled("aggregation")

        usable: list[AnalysisOutcome] = []
        for outcome in outcomes:
            if outcome.ok:
                usable.append(outcome)
            else:
                assert outcome.error is not None
                excluded.append(outcome.record.relative_path)
                diagnostics.append(f"{outcome.record.relative_path}: {outcome.error.describe()}")

        if not usable:
            logger.warning("No usable analyses for %s; skipping aggregation", folder)
            return ModuleSummary.empty_result(
                str(folder),
                "no file produced a usable analysis",
                excluded=excluded,
                diagnostics=diagnostics,
            )

        summary = self._reduce(folder, usable, diagnostics)
        summary.excluded = excluded
        return summary

    def analyze_folder_files(
        self,
        folder: Path,
        diagnostics: list[str],
        excluded: list[str],
        cancel: CancellationToken | None = None,
    ) -> list[AnalysisOutcome]:
        """Flatten a folder and analyze its files (map stage).

        Files beyond max_files are excluded and reported; files over
        max_file_bytes become TOO_LARGE outcomes without a request.
        """
        files = self.enumerator.enumerate(folder)
        cap = self.settings.max_files

        if len(files) > cap:
            overflow = files[cap:]
            files = files[:cap]
            logger.warning(
                "%s has %d analyzable files; analyzing the first %d, excluding %d",
                folder,
                len(files) + len(overflow),
                cap,
                len(overflow),
            )
            for path in overflow:
                relative = FileRecord.from_path(path, folder).relative_path
                excluded.append(relative)
                diagnostics.append(f"{relative}: Excluded by file cap ({cap})")

        logger.info("Analyzing %d files under %s", len(files), folder)

        if self.settings.max_workers == 1 or len(files) <= 1:
            return [self.analyze_one(path, folder, cancel) for path in files]

        outcomes: list[AnalysisOutcome | None] = [None] * len(files)
        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            futures = {
                executor.submit(self.analyze_one, path, folder, cancel): i
                for i, path in enumerate(files)
            }
            for future, index in futures.items():
                outcomes[index] = future.result()

        return [o for o in outcomes if o is not None]

    def analyze_one(
        self,
        path: Path,
        folder: Path,
        cancel: CancellationToken | None = None,
        refresh: bool = False,
    ) -> AnalysisOutcome:
        """Analyze one file from disk, honoring the size ceiling.

        Args:
            path: File to analyze
            folder: Root the relative path is computed against
            cancel: Token; a cancelled run yields a CANCELLED outcome
            refresh: Bypass the analysis cache

        Returns:
            AnalysisOutcome for the file
        """
        record = FileRecord.from_path(path, folder)

        if cancel is not None and cancel.cancelled:
            return AnalysisOutcome.failure(record, ErrorKind.CANCELLED, "run was cancelled")

        try:
            size = path.stat().st_size
        except OSError as e:
            return AnalysisOutcome.failure(record, ErrorKind.IO, str(e))

        if size > self.settings.max_file_bytes:
            logger.info("Skipping %s: %d bytes", record.relative_path, size)
            return AnalysisOutcome.failure(
                record,
                ErrorKind.TOO_LARGE,
                f"{size} bytes > {self.settings.max_file_bytes}",
            )

        return self.analyzer.analyze_path(path, folder, refresh=refresh)

    def _reduce(
        self,
        folder: Path,
        usable: list[AnalysisOutcome],
        diagnostics: list[str],
    ) -> ModuleSummary:
        with_diagram = self.settings.with_diagram
        structure_only = self.settings.strategy is AggregationStrategy.STRUCTURE
        name = folder.name or str(folder)

        if structure_only:
            prompt = build_structure_prompt(
                name, render_structure_tree(usable), self.settings.max_context_chars
            )
        else:
            prompt = build_aggregation_prompt(name, usable, self.settings.max_context_chars)

        analyzed = [o.record.relative_path for o in usable]
        logger.info(
            "Aggregating %d analyses for %s (%s)",
            len(usable),
            name,
            self.settings.strategy.value,
        )

        try:
            raw = self.gateway.complete(
                prompt,
                system_prompt=get_aggregation_system_prompt(with_diagram, structure_only),
            )
        except GatewayExhausted as e:
            logger.error("Aggregation failed for %s: %s", folder, e)
            return ModuleSummary(
                narrative=f"Aggregation failed: {e}",
                folder=str(folder),
                analyzed=analyzed,
                diagnostics=diagnostics,
                error=str(e),
            )

        narrative, diagram = self._parse_reduce_response(raw, with_diagram, diagnostics)

        return ModuleSummary(
            narrative=narrative,
            diagram=diagram,
            folder=str(folder),
            analyzed=analyzed,
            diagnostics=diagnostics,
        )

    @staticmethod
    def _parse_reduce_response(
        raw: str,
        with_diagram: bool,
        diagnostics: list[str],
    ) -> tuple[str, str | None]:
        if not with_diagram:
            return strip_code_fences(raw), None

        try:
            data = parse_json_object(raw)
        except MalformedResponseError as e:
            logger.warning("Aggregation response was not JSON: %s", e)
            diagnostics.append(f"Aggregation response was not valid JSON ({e}); using raw text")
            return strip_code_fences(raw), None

        narrative = data.get("narrative") or data.get("story") or ""
        diagram = data.get("diagram") or data.get("mermaid") or None
        if not isinstance(narrative, str) or not narrative.strip():
            diagnostics.append("Aggregation response had no narrative")
            narrative = strip_code_fences(raw)
        if diagram is not None and not isinstance(diagram, str):
            diagnostics.append("Aggregation response diagram was not a string")
            diagram = None
        return narrative.strip(), strip_code_fences(diagram) if diagram else None
