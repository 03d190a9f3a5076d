"""Analysis result entities.

This module contains entities related to codebase analysis:
- FileCategory / FileRecord: Prompt context derived from a file's path
- Symbol: A single named declaration reported by the analysis
- AnalysisResult: Structured per-file analysis (map stage output)
- AnalysisError: Non-fatal failure attached to a single file
- AnalysisOutcome: Tagged result of analyzing one file (result xor error)
- ModuleSummary: Aggregated narrative for a folder (reduce stage output)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class FileCategory(Enum):
    """Coarse role of a file, derived from its path."""

    MAIN = "Main"
    RENDERER = "Renderer"
    PRELOAD = "Preload"
    CONFIG = "Config"
    LOGIC = "Logic"


def classify_file(relative_path: str) -> FileCategory:
    """Classify a file by substrings of its lowercased relative path.

    First match wins, so "src/main/config.ts" is MAIN.

    Args:
        relative_path: Path relative to the analysis root

    Returns:
        FileCategory for the path
    """
    p = relative_path.replace("\\", "/").lower()
    if "main" in p:
        return FileCategory.MAIN
    if "renderer" in p:
        return FileCategory.RENDERER
    if "preload" in p:
        return FileCategory.PRELOAD
    if "node" in p or "config" in p:
        return FileCategory.CONFIG
    return FileCategory.LOGIC


@dataclass(frozen=True)
class FileRecord:
    """Identity and prompt context for a single file.

    Attributes:
        path: Absolute path (the cache key)
        relative_path: Path relative to the analysis root, "/"-separated
        category: Coarse role derived from relative_path
    """

    path: str
    relative_path: str
    category: FileCategory

    @classmethod
    def from_path(cls, file_path: Path, root: Path | None = None) -> "FileRecord":
        """Build a record for file_path, relative to root when given."""
        absolute = file_path.resolve()
        if root is not None:
            try:
                relative = absolute.relative_to(root.resolve()).as_posix()
            except ValueError:
                relative = file_path.name
        else:
            relative = file_path.name
        return cls(
            path=str(absolute),
            relative_path=relative,
            category=classify_file(relative),
        )


@dataclass(frozen=True)
class Symbol:
    """A named declaration found in a file."""

    name: str
    kind: str
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "kind": self.kind, "description": self.description}


@dataclass(frozen=True)
class AnalysisResult:
    """Structured analysis of one file.

    Attributes:
        overview: One or two sentences describing the file's role
        technical_depth: Notable implementation details
        exports: Public surface of the file
        symbols: Declarations in source order
    """

    overview: str
    technical_depth: str | None = None
    exports: str | None = None
    symbols: tuple[Symbol, ...] = ()

    @property
    def summary_line(self) -> str:
        """First non-empty line of the overview."""
        for line in self.overview.splitlines():
            if line.strip():
                return line.strip()
        return ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "overview": self.overview,
            "technicalDepth": self.technical_depth,
            "exports": self.exports,
            "symbols": [s.to_dict() for s in self.symbols],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        """Create an AnalysisResult from a parsed response payload.

        Accepts camelCase and snake_case keys. Symbols that are not objects
        with a name are dropped.

        Raises:
            ValueError: If overview is missing or not a string, or symbols
                is present but not a list
        """
        overview = data.get("overview")
        if not isinstance(overview, str) or not overview.strip():
            raise ValueError("response has no 'overview' string")

        raw_symbols = data.get("symbols")
        if raw_symbols is None:
            raw_symbols = []
        elif not isinstance(raw_symbols, list):
            raise ValueError(
                f"'symbols' must be a list, got {type(raw_symbols).__name__}"
            )

        symbols: list[Symbol] = []
        for item in raw_symbols:
            if isinstance(item, dict) and item.get("name"):
                symbols.append(
                    Symbol(
                        name=str(item["name"]),
                        kind=str(item.get("kind", "")),
                        description=str(item.get("description", "")),
                    )
                )

        return cls(
            overview=overview.strip(),
            technical_depth=_optional_text(
                data.get("technicalDepth", data.get("technical_depth"))
            ),
            exports=_optional_text(data.get("exports")),
            symbols=tuple(symbols),
        )


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value)
    text = str(value).strip()
    return text or None


class ErrorKind(Enum):
    """Why a single file produced no usable analysis."""

    IO = "io"
    GATEWAY_EXHAUSTED = "gateway_exhausted"
    MALFORMED_RESPONSE = "malformed_response"
    TOO_LARGE = "too_large"
    CANCELLED = "cancelled"


@dataclass
class AnalysisError:
    """Non-fatal error encountered while analyzing one file.

    Attributes:
        kind: Failure category
        message: Error description
        file_path: File that caused the error (if applicable)
        recoverable: Whether the run continued after this error
    """

    kind: ErrorKind
    message: str
    file_path: str | None = None
    recoverable: bool = True

    def describe(self) -> str:
        """Human-readable diagnostic line."""
        labels = {
            ErrorKind.IO: "Could not read file",
            ErrorKind.GATEWAY_EXHAUSTED: "Analysis request failed",
            ErrorKind.MALFORMED_RESPONSE: "Failed to parse analysis response",
            ErrorKind.TOO_LARGE: "File exceeds size ceiling",
            ErrorKind.CANCELLED: "Analysis cancelled",
        }
        return f"{labels[self.kind]}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "file_path": self.file_path,
            "recoverable": self.recoverable,
        }


@dataclass
class AnalysisOutcome:
    """Result of analyzing one file: exactly one of result or error is set.

    Attributes:
        record: File the outcome belongs to
        result: Analysis on success
        error: Failure description otherwise
        cached: True if the result came from the analysis cache
    """

    record: FileRecord
    result: AnalysisResult | None = None
    error: AnalysisError | None = None
    cached: bool = False

    def __post_init__(self) -> None:
        """Enforce the result/error exclusivity."""
        if (self.result is None) == (self.error is None):
            raise ValueError("AnalysisOutcome requires exactly one of result or error")

    @property
    def ok(self) -> bool:
        """True if the file produced a usable analysis."""
        return self.result is not None

    @classmethod
    def success(
        cls, record: FileRecord, result: AnalysisResult, cached: bool = False
    ) -> "AnalysisOutcome":
        return cls(record=record, result=result, cached=cached)

    @classmethod
    def failure(
        cls, record: FileRecord, kind: ErrorKind, message: str
    ) -> "AnalysisOutcome":
        return cls(
            record=record,
            error=AnalysisError(kind=kind, message=message, file_path=record.path),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the AnalysisResult shape.

        A failed outcome carries its diagnostic in ``overview`` with empty
        ``symbols`` and the structured error under ``error``.
        """
        if self.result is not None:
            data = self.result.to_dict()
            data["error"] = None
        else:
            assert self.error is not None
            data = {
                "overview": self.error.describe(),
                "technicalDepth": None,
                "exports": None,
                "symbols": [],
                "error": self.error.to_dict(),
            }
        data["path"] = self.record.relative_path
        data["category"] = self.record.category.value
        return data


@dataclass
class ModuleSummary:
    """Aggregated narrative for a folder.

    Attributes:
        narrative: Description of responsibilities and collaboration
        diagram: Mermaid flowchart source, if requested and returned
        folder: Folder the summary describes
        empty: True if no file produced a usable analysis
        analyzed: Relative paths that contributed to the narrative
        excluded: Relative paths left out (cap, failure or size)
        diagnostics: One line per exclusion or recovered problem
        error: Set when the aggregation request itself failed
    """

    narrative: str
    diagram: str | None = None
    folder: str = ""
    empty: bool = False
    analyzed: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def diagnostic_log(self) -> str:
        """Diagnostics joined into a single log string."""
        return "\n".join(self.diagnostics)

    @classmethod
    def empty_result(
        cls,
        folder: str,
        reason: str,
        excluded: list[str] | None = None,
        diagnostics: list[str] | None = None,
    ) -> "ModuleSummary":
        """Summary for a folder where nothing could be analyzed."""
        return cls(
            narrative=f"No analysis available for {folder}: {reason}",
            folder=folder,
            empty=True,
            excluded=list(excluded or []),
            diagnostics=list(diagnostics or []),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "narrative": self.narrative,
            "diagram": self.diagram,
            "folder": self.folder,
            "empty": self.empty,
            "analyzed": list(self.analyzed),
            "excluded": list(self.excluded),
            "diagnostics": list(self.diagnostics),
            "error": self.error,
        }
