"""Logic Horizon configuration system.

Configuration is YAML-based with a few CLI overrides (--output, --format,
--concurrent). Supports environment variable substitution (${VAR}) in config
files, which is how the credential pool is usually supplied:

    llm:
      api_keys: "${HORIZON_API_KEYS}"   # comma-delimited

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.horizon/config.yaml
3. ./horizon.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from horizon.analyzers.aggregator import AggregationStrategy, AggregatorSettings
from horizon.analyzers.enumerator import DEFAULT_EXCLUDE_DIRS, DEFAULT_EXTENSIONS
from horizon.models.llm_config import LLMConfig

VALID_CONCURRENCY = frozenset({"serial", "concurrent"})
VALID_FORMATS = frozenset({"markdown", "json"})

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class OutputConfig:
    """Output configuration.

    Attributes:
        path: Output file path
        format: Output format (markdown, json)
    """

    path: str = "docs/ARCHITECTURE.md"
    format: str = "markdown"

    def __post_init__(self) -> None:
        """Validate output format."""
        if self.format not in VALID_FORMATS:
            raise ValueError(f"Invalid output format: {self.format}. Valid: {sorted(VALID_FORMATS)}")


@dataclass
class AnalysisConfig:
    """Limits and scheduling for an analysis run.

    Attributes:
        max_chars: Characters of each file sent to the model
        max_files: Files analyzed per folder summary
        max_file_bytes: Size ceiling; larger files are skipped
        max_context_chars: Bound on the aggregation request context
        inter_call_delay: Seconds between per-file requests
        retry_delay: Seconds between failed attempts
        attempts_per_credential: Retry budget multiplier per credential
        cache_size: Maximum cached per-file analyses
        concurrency: "serial" or "concurrent"
        max_workers: Worker threads in concurrent mode
        strategy: Aggregation context ("map_reduce" or "structure")
        diagram: Ask for a Mermaid diagram with the narrative
        extensions: Allowed file extensions
        exclude_dirs: Directory names never descended into
    """

    max_chars: int = 6000
    max_files: int = 30
    max_file_bytes: int = 200_000
    max_context_chars: int = 50_000
    inter_call_delay: float = 0.6
    retry_delay: float = 1.0
    attempts_per_credential: int = 2
    cache_size: int = 2048
    concurrency: str = "serial"
    max_workers: int = 4
    strategy: str = "map_reduce"
    diagram: bool = True
    extensions: list[str] = field(default_factory=lambda: sorted(DEFAULT_EXTENSIONS))
    exclude_dirs: list[str] = field(default_factory=lambda: sorted(DEFAULT_EXCLUDE_DIRS))

    def __post_init__(self) -> None:
        """Validate analysis settings."""
        for name in (
            "max_chars",
            "max_files",
            "max_file_bytes",
            "max_context_chars",
            "attempts_per_credential",
            "cache_size",
            "max_workers",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive. Got: {getattr(self, name)}")

        if self.inter_call_delay < 0 or self.retry_delay < 0:
            raise ValueError("Delays must not be negative")

        if self.concurrency not in VALID_CONCURRENCY:
            raise ValueError(
                f"Invalid concurrency: {self.concurrency}. Valid: {sorted(VALID_CONCURRENCY)}"
            )

        valid_strategies = {s.value for s in AggregationStrategy}
        if self.strategy not in valid_strategies:
            raise ValueError(f"Invalid strategy: {self.strategy}. Valid: {sorted(valid_strategies)}")

    def aggregator_settings(self) -> AggregatorSettings:
        """Settings for the module aggregator."""
        return AggregatorSettings(
            max_files=self.max_files,
            max_file_bytes=self.max_file_bytes,
            max_context_chars=self.max_context_chars,
            max_workers=self.max_workers if self.concurrency == "concurrent" else 1,
            strategy=AggregationStrategy(self.strategy),
            with_diagram=self.diagram,
        )


def default_llm_config() -> LLMConfig:
    """Local Ollama default, so nothing leaves the machine unless configured."""
    return LLMConfig(provider="ollama", model="llama3.2", api_base="http://localhost:11434")


@dataclass
class HorizonConfig:
    """Top-level Logic Horizon configuration.

    Attributes:
        llm: Text-generation provider and credential pool
        analysis: Limits and scheduling
        output: Output path and format
    """

    llm: LLMConfig = field(default_factory=default_llm_config)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${HORIZON_API_KEYS} -> value of HORIZON_API_KEYS

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".horizon" / "config.yaml",
        start_path / "horizon.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> HorizonConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        HorizonConfig instance

    Raises:
        ValueError: If a value is invalid or an env var is missing
    """
    data = substitute_env_vars(data)

    config = HorizonConfig()

    if "llm" in data:
        llm_data = dict(data["llm"] or {})
        llm_data.setdefault("provider", config.llm.provider)
        llm_data.setdefault("model", config.llm.model)
        if llm_data["provider"] == "ollama":
            llm_data.setdefault("api_base", config.llm.api_base)
        config.llm = LLMConfig.from_dict(llm_data)

    if "analysis" in data:
        analysis_data = data["analysis"] or {}
        defaults = AnalysisConfig()
        config.analysis = AnalysisConfig(
            max_chars=int(analysis_data.get("max_chars", defaults.max_chars)),
            max_files=int(analysis_data.get("max_files", defaults.max_files)),
            max_file_bytes=int(analysis_data.get("max_file_bytes", defaults.max_file_bytes)),
            max_context_chars=int(
                analysis_data.get("max_context_chars", defaults.max_context_chars)
            ),
            inter_call_delay=float(
                analysis_data.get("inter_call_delay", defaults.inter_call_delay)
            ),
            retry_delay=float(analysis_data.get("retry_delay", defaults.retry_delay)),
            attempts_per_credential=int(
                analysis_data.get("attempts_per_credential", defaults.attempts_per_credential)
            ),
            cache_size=int(analysis_data.get("cache_size", defaults.cache_size)),
            concurrency=analysis_data.get("concurrency", defaults.concurrency),
            max_workers=int(analysis_data.get("max_workers", defaults.max_workers)),
            strategy=analysis_data.get("strategy", defaults.strategy),
            diagram=bool(analysis_data.get("diagram", defaults.diagram)),
            extensions=list(analysis_data.get("extensions", defaults.extensions)),
            exclude_dirs=list(analysis_data.get("exclude_dirs", defaults.exclude_dirs)),
        )

    if "output" in data:
        output_data = data["output"] or {}
        config.output = OutputConfig(
            path=output_data.get("path", config.output.path),
            format=output_data.get("format", config.output.format),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> HorizonConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        HorizonConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = HorizonConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# Logic Horizon Configuration

# Text-generation provider
llm:
  provider: "ollama"     # ollama (local), claude, gemini, bedrock, openai
  model: "llama3.2"
  api_base: "http://localhost:11434"
  # Credential pool, rotated on failure (comma-delimited or a list)
  # api_keys: "${HORIZON_API_KEYS}"
  temperature: 0         # at most 0.2
  max_tokens: 4096

# Analysis limits and scheduling
analysis:
  max_chars: 6000        # characters of each file sent to the model
  max_files: 30          # files per folder summary
  max_file_bytes: 200000 # larger files are skipped
  max_context_chars: 50000
  inter_call_delay: 0.6  # seconds between per-file requests
  retry_delay: 1.0       # seconds between failed attempts
  attempts_per_credential: 2
  cache_size: 2048
  concurrency: "serial"  # serial, concurrent
  max_workers: 4
  strategy: "map_reduce" # map_reduce, structure
  diagram: true

# Output settings
output:
  path: "docs/ARCHITECTURE.md"
  format: "markdown"     # markdown, json
'''
