"""Logic Horizon analyzers.

The map-reduce building blocks of an analysis run:
- enumerator: Finds analyzable files under a root
- cache: Process-lifetime LRU of per-file analyses
- file_analyzer: Map stage, one structured analysis per file
- aggregator: Reduce stage, one narrative per folder
"""

from horizon.analyzers.aggregator import (
    AggregationStrategy,
    AggregatorSettings,
    ModuleAggregator,
    render_structure_tree,
)
from horizon.analyzers.cache import AnalysisCache
from horizon.analyzers.enumerator import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXTENSIONS,
    FileEnumerator,
)
from horizon.analyzers.file_analyzer import FileAnalyzer, read_file_content

__all__ = [
    "AggregationStrategy",
    "AggregatorSettings",
    "AnalysisCache",
    "DEFAULT_EXCLUDE_DIRS",
    "DEFAULT_EXTENSIONS",
    "FileAnalyzer",
    "FileEnumerator",
    "ModuleAggregator",
    "read_file_content",
    "render_structure_tree",
]
