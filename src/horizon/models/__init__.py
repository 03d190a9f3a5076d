"""Logic Horizon data models.

This module exports the core entities used throughout the application:
- FileRecord / FileCategory: File identity and prompt context
- AnalysisResult / Symbol: Per-file structured analysis
- AnalysisOutcome / AnalysisError / ErrorKind: Tagged per-file result
- ModuleSummary: Aggregated folder narrative
- LLMConfig: Text-generation provider settings
"""

from horizon.models.analysis import (
    AnalysisError,
    AnalysisOutcome,
    AnalysisResult,
    ErrorKind,
    FileCategory,
    FileRecord,
    ModuleSummary,
    Symbol,
    classify_file,
)
from horizon.models.llm_config import VALID_PROVIDERS, LLMConfig, parse_api_keys

__all__ = [
    "AnalysisError",
    "AnalysisOutcome",
    "AnalysisResult",
    "ErrorKind",
    "FileCategory",
    "FileRecord",
    "LLMConfig",
    "ModuleSummary",
    "Symbol",
    "VALID_PROVIDERS",
    "classify_file",
    "parse_api_keys",
]
