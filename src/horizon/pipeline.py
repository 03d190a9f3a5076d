"""Analysis pipeline orchestrator.

Drives enumeration, the per-file map stage and the aggregation reduce stage,
broadcasting progress after every file. Per-file failures are recorded and
the run continues; only cancellation stops a run early.
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from horizon.analyzers.aggregator import AggregatorSettings, ModuleAggregator
from horizon.analyzers.cache import AnalysisCache
from horizon.analyzers.enumerator import FileEnumerator
from horizon.analyzers.file_analyzer import FileAnalyzer
from horizon.config import HorizonConfig
from horizon.llm.client import CompletionGateway, RetryPolicy, create_gateway
from horizon.models.analysis import AnalysisOutcome, FileRecord, ModuleSummary
from horizon.utils.cancellation import CancellationToken
from horizon.utils.progress import ProgressBroadcaster, ProgressEvent

logger = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    """Options for controlling a single run.

    Attributes:
        concurrent: Run the map stage on a worker pool instead of serially
        max_workers: Worker threads in concurrent mode
        inter_call_delay: Seconds between per-file requests
        refresh: Ignore cached analyses (results are re-cached)
    """

    concurrent: bool = False
    max_workers: int = 4
    inter_call_delay: float = 0.6
    refresh: bool = False


@dataclass
class RunReport:
    """Per-file outcomes of the last run, kept for diagnostics.

    Attributes:
        root: Analysis root
        outcomes: One outcome per enumerated file, in enumeration order
    """

    root: str
    outcomes: list[AnalysisOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[AnalysisOutcome]:
        """Outcomes that carry an error."""
        return [o for o in self.outcomes if not o.ok]

    @property
    def cache_hits(self) -> int:
        """Outcomes served from the cache."""
        return sum(1 for o in self.outcomes if o.cached)


class AnalysisPipeline:
    """Orchestrates enumerate -> analyze -> aggregate.

    The pipeline sequence:
    1. Enumerate analyzable files under the root
    2. Analyze each file (map), emitting progress after each one
    3. Aggregate all outcomes into one ModuleSummary (reduce)

    All collaborators can be injected; by default they are built from the
    configuration.
    """

    def __init__(
        self,
        config: HorizonConfig | None = None,
        gateway: CompletionGateway | None = None,
        cache: AnalysisCache | None = None,
        enumerator: FileEnumerator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the analysis pipeline.

        Args:
            config: Logic Horizon configuration (uses defaults if None)
            gateway: Completion gateway (built from config.llm if None)
            cache: Shared analysis cache (sized from config if None)
            enumerator: File enumerator (built from config if None)
            sleep: Blocking sleep used for inter-call and retry delays
        """
        self.config = config or HorizonConfig()
        analysis = self.config.analysis

        if gateway is None:
            retry = RetryPolicy(
                delay_seconds=analysis.retry_delay,
                attempts_per_credential=analysis.attempts_per_credential,
                sleep=sleep,
            )
            gateway = create_gateway(self.config.llm, retry)

        self.gateway = gateway
        self.cache = cache if cache is not None else AnalysisCache(analysis.cache_size)
        self.enumerator = enumerator or FileEnumerator(
            extensions=analysis.extensions,
            exclude_dirs=analysis.exclude_dirs,
        )
        self.analyzer = FileAnalyzer(self.gateway, self.cache, max_chars=analysis.max_chars)
        self.aggregator = ModuleAggregator(
            self.gateway,
            self.analyzer,
            self.enumerator,
            analysis.aggregator_settings(),
        )
        self.progress = ProgressBroadcaster()
        self.last_run: RunReport | None = None
        self._sleep = sleep

    def default_options(self) -> PipelineOptions:
        """Pipeline options derived from the configuration."""
        analysis = self.config.analysis
        return PipelineOptions(
            concurrent=analysis.concurrency == "concurrent",
            max_workers=analysis.max_workers,
            inter_call_delay=analysis.inter_call_delay,
        )

    # =========================================================================
    # Exposed operations
    # =========================================================================

    def analyze_file(
        self,
        content: str,
        path: str | Path,
        refresh: bool = False,
    ) -> AnalysisOutcome:
        """Analyze a single file's content (cache first).

        Args:
            content: File content
            path: File path; the cache key
            refresh: Bypass the cache

        Returns:
            AnalysisOutcome (serialize with ``to_dict()``)
        """
        return self.analyzer.analyze(content, Path(path), refresh=refresh)

    def analyze_folder(
        self,
        folder_path: str | Path,
        cancel: CancellationToken | None = None,
        settings: AggregatorSettings | None = None,
    ) -> ModuleSummary:
        """Summarize a folder from its path.

        The folder is re-enumerated and flattened, capped at max_files, and
        analyzed with cache reuse before a single aggregation request.

        Args:
            folder_path: Folder to summarize
            cancel: Optional cancellation token
            settings: Override aggregation settings for this call

        Returns:
            ModuleSummary (serialize with ``to_dict()``)
        """
        aggregator = self.aggregator
        if settings is not None:
            aggregator = ModuleAggregator(self.gateway, self.analyzer, self.enumerator, settings)
        return aggregator.aggregate(Path(folder_path), cancel=cancel)

    def run_analysis(
        self,
        root_path: str | Path,
        options: PipelineOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ModuleSummary:
        """Execute the full analysis pipeline over a project root.

        Args:
            root_path: Project root directory
            options: Run options (derived from config if None)
            cancel: Token checked before each file and before aggregation

        Returns:
            ModuleSummary for the whole root

        Raises:
            AnalysisCancelled: If cancellation was requested mid-run
        """
        options = options or self.default_options()
        root = Path(root_path).resolve()

        files = self.enumerator.enumerate(root)
        report = RunReport(root=str(root))
        self.last_run = report

        logger.info("Starting analysis of %s", root)
        logger.info(
            "Total files: %d | Mode: %s",
            len(files),
            "concurrent" if options.concurrent else "serial",
        )

        if not files:
            logger.warning("No analyzable files under %s", root)
            return ModuleSummary.empty_result(str(root), "no analyzable files found")

        if options.concurrent and options.max_workers > 1:
            report.outcomes = self._map_concurrent(root, files, options, cancel)
        else:
            report.outcomes = self._map_serial(root, files, options, cancel)

        failed = len(report.failed)
        logger.info(
            "Map stage complete: %d analyzed, %d failed, %d from cache",
            len(files) - failed,
            failed,
            report.cache_hits,
            extra={
                "fields": {
                    "files": len(files),
                    "failed": failed,
                    "cache_hits": report.cache_hits,
                }
            },
        )

        if cancel is not None:
            cancel.raise_if_cancelled("aggregation")

        summary = self.aggregator.aggregate(root, report.outcomes, cancel=cancel)
        logger.info("Analysis complete for %s", root)
        return summary

    # =========================================================================
    # Map stage scheduling
    # =========================================================================

    def _analyze(
        self,
        path: Path,
        root: Path,
        index: int,
        total: int,
        refresh: bool,
        cancel: CancellationToken | None = None,
    ) -> AnalysisOutcome:
        record = FileRecord.from_path(path, root)
        logger.info(
            "[%d/%d] Analyzing: %s (%s)",
            index + 1,
            total,
            record.relative_path,
            record.category.value,
        )
        return self.aggregator.analyze_one(path, root, cancel=cancel, refresh=refresh)

    def _map_serial(
        self,
        root: Path,
        files: list[Path],
        options: PipelineOptions,
        cancel: CancellationToken | None,
    ) -> list[AnalysisOutcome]:
        outcomes: list[AnalysisOutcome] = []
        total = len(files)

        for i, path in enumerate(files):
            if cancel is not None:
                cancel.raise_if_cancelled(f"file {i + 1}/{total}")

            outcome = self._analyze(path, root, i, total, options.refresh)
            outcomes.append(outcome)

            self.progress.emit(ProgressEvent.for_step(i + 1, total, outcome.record.relative_path))

            # Cached results made no request, so they need no pause
            if not outcome.cached and i + 1 < total and options.inter_call_delay > 0:
                self._sleep(options.inter_call_delay)

        return outcomes

    def _map_concurrent(
        self,
        root: Path,
        files: list[Path],
        options: PipelineOptions,
        cancel: CancellationToken | None,
    ) -> list[AnalysisOutcome]:
        total = len(files)
        completed = 0
        lock = threading.Lock()
        outcomes: list[AnalysisOutcome | None] = [None] * total

        def on_done(index: int, future: "Future[AnalysisOutcome]") -> None:
            nonlocal completed
            if future.exception() is not None:
                return
            outcome = future.result()
            # Emitted under the lock so percentages arrive in order
            with lock:
                outcomes[index] = outcome
                completed += 1
                self.progress.emit(
                    ProgressEvent.for_step(completed, total, outcome.record.relative_path)
                )

        with ThreadPoolExecutor(max_workers=options.max_workers) as executor:
            futures: list[Future[AnalysisOutcome]] = []
            for i, path in enumerate(files):
                if cancel is not None and cancel.cancelled:
                    break
                future = executor.submit(
                    self._analyze, path, root, i, total, options.refresh, cancel
                )
                future.add_done_callback(lambda f, i=i: on_done(i, f))
                futures.append(future)

                # Staggers submissions; worker threads are never paused
                if i + 1 < total and options.inter_call_delay > 0:
                    self._sleep(options.inter_call_delay)

        # Surface unexpected worker errors
        for future in futures:
            future.result()

        if cancel is not None:
            cancel.raise_if_cancelled("aggregation")

        return [o for o in outcomes if o is not None]
