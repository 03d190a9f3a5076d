"""Per-file analysis (map stage).

Sends one file's truncated content to the completion gateway, cleans and
parses the structured response, and records successes in the analysis
cache. Failures are returned as AnalysisOutcome errors, never raised.
"""

import logging
from pathlib import Path

from horizon.analyzers.cache import AnalysisCache
from horizon.llm.client import CompletionGateway, GatewayExhausted
from horizon.llm.parsing import MalformedResponseError, parse_json_object
from horizon.llm.prompts import FILE_ANALYSIS_SYSTEM_PROMPT, build_file_prompt
from horizon.models.analysis import (
    AnalysisOutcome,
    AnalysisResult,
    ErrorKind,
    FileRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 6000


def read_file_content(path: Path) -> str:
    """Read a source file as text.

    Undecodable bytes are replaced rather than failing the read.

    Raises:
        OSError: If the file is missing or unreadable
    """
    return Path(path).read_text(encoding="utf-8", errors="replace")


class FileAnalyzer:
    """Produces an AnalysisResult for a single file."""

    def __init__(
        self,
        gateway: CompletionGateway,
        cache: AnalysisCache | None = None,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        """Initialize the analyzer.

        Args:
            gateway: Completion gateway used for the analysis request
            cache: Shared analysis cache (a private one if None)
            max_chars: Character budget for file content in the prompt
        """
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive. Got: {max_chars}")
        self.gateway = gateway
        self.cache = cache if cache is not None else AnalysisCache()
        self.max_chars = max_chars

    def analyze(
        self,
        content: str,
        path: FileRecord | str | Path,
        refresh: bool = False,
    ) -> AnalysisOutcome:
        """Analyze file content.

        A cached result for the same path is returned without a request
        unless refresh is set.

        Args:
            content: File content
            path: File identity (a FileRecord, or a path)
            refresh: Bypass the cache and overwrite its entry on success

        Returns:
            AnalysisOutcome carrying the result or the failure
        """
        record = path if isinstance(path, FileRecord) else FileRecord.from_path(Path(path))

        if not refresh:
            cached = self.cache.get(record.path)
            if cached is not None:
                logger.debug("Cache hit: %s", record.relative_path)
                return AnalysisOutcome.success(record, cached, cached=True)

        prompt = build_file_prompt(record, content, self.max_chars)

        try:
            raw = self.gateway.complete(prompt, system_prompt=FILE_ANALYSIS_SYSTEM_PROMPT)
        except GatewayExhausted as e:
            logger.warning("Analysis failed for %s: %s", record.relative_path, e)
            return AnalysisOutcome.failure(record, ErrorKind.GATEWAY_EXHAUSTED, str(e))

        try:
            result = AnalysisResult.from_dict(parse_json_object(raw))
        except (MalformedResponseError, ValueError) as e:
            logger.warning(
                "Malformed analysis response for %s: %s", record.relative_path, e
            )
            return AnalysisOutcome.failure(record, ErrorKind.MALFORMED_RESPONSE, str(e))

        self.cache.put(record.path, result)
        logger.debug(
            "Analyzed %s: %d symbols", record.relative_path, len(result.symbols)
        )
        return AnalysisOutcome.success(record, result)

    def analyze_path(
        self,
        file_path: Path,
        root: Path | None = None,
        refresh: bool = False,
    ) -> AnalysisOutcome:
        """Read and analyze a file from disk.

        Args:
            file_path: File to analyze
            root: Analysis root, for the relative path and category
            refresh: Bypass the cache

        Returns:
            AnalysisOutcome; unreadable files produce an IO error outcome
        """
        record = FileRecord.from_path(Path(file_path), root)

        if not refresh:
            cached = self.cache.get(record.path)
            if cached is not None:
                logger.debug("Cache hit: %s", record.relative_path)
                return AnalysisOutcome.success(record, cached, cached=True)

        try:
            content = read_file_content(Path(record.path))
        except OSError as e:
            logger.warning("Could not read %s: %s", record.relative_path, e)
            return AnalysisOutcome.failure(record, ErrorKind.IO, str(e))

        return self.analyze(content, record, refresh=True)
