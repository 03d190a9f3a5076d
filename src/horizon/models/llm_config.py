"""LLM Configuration entity for Logic Horizon.

Defines the configuration for the text-generation provider used by the map
and reduce stages. Supports Claude, Gemini, Ollama, Bedrock and any
OpenAI-compatible endpoint.
"""

from dataclasses import dataclass, field

# Valid LLM providers
VALID_PROVIDERS = frozenset({"claude", "gemini", "ollama", "bedrock", "openai"})

# Providers that cannot run without at least one API key
KEYED_PROVIDERS = frozenset({"claude", "gemini", "openai"})

# Upper bound for the near-deterministic sampling configuration
MAX_TEMPERATURE = 0.2


def parse_api_keys(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Normalize a credential pool definition.

    Accepts a comma-delimited string or a list of strings (each of which may
    itself be comma-delimited). Blank entries are dropped, order is kept.

    Args:
        value: Raw configuration value

    Returns:
        Ordered list of credentials
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    keys: list[str] = []
    for item in value:
        keys.extend(part.strip() for part in str(item).split(","))
    return [key for key in keys if key]


@dataclass
class LLMConfig:
    """Configuration for LLM provider.

    Attributes:
        provider: LLM provider (claude, gemini, ollama, bedrock, openai)
        model: Model identifier (e.g., "claude-3-5-haiku-latest", "llama3.2")
        api_keys: Credential pool, rotated on failure
        api_base: API base URL (required for Ollama and OpenAI-compatible)
        temperature: Sampling temperature (at most 0.2)
        max_tokens: Maximum response tokens
        enabled: Whether LLM analysis is enabled
    """

    provider: str
    model: str
    api_keys: list[str] = field(default_factory=list)
    api_base: str | None = None
    temperature: float = field(default=0.0)
    max_tokens: int = field(default=4096)
    enabled: bool = field(default=True)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        # Normalize provider to lowercase
        self.provider = self.provider.lower().strip()

        if self.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{self.provider}'. "
                f"Must be one of: {sorted(VALID_PROVIDERS)}"
            )

        if not self.model or not self.model.strip():
            raise ValueError("Model identifier cannot be empty")
        self.model = self.model.strip()

        self.api_keys = parse_api_keys(self.api_keys)

        if not 0.0 <= self.temperature <= MAX_TEMPERATURE:
            raise ValueError(
                f"Temperature must be between 0 and {MAX_TEMPERATURE} "
                f"for near-deterministic output. Got: {self.temperature}"
            )

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        # Provider-specific validation
        if self.provider == "ollama":
            if not self.api_base:
                raise ValueError("api_base is required for Ollama provider")
        elif self.provider == "openai":
            if not self.api_base:
                raise ValueError("api_base is required for openai provider")
            if not self.api_keys:
                raise ValueError("api_keys is required for openai provider")
        elif self.provider in KEYED_PROVIDERS:
            if not self.api_keys:
                raise ValueError(f"api_keys is required for {self.provider} provider")
        # Bedrock uses AWS credentials from the environment

    def validate(self) -> list[str]:
        """Validate configuration and return warnings.

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings: list[str] = []

        if self.max_tokens < 1000:
            warnings.append(
                f"max_tokens is set to {self.max_tokens}, which may truncate responses"
            )

        if len(set(self.api_keys)) != len(self.api_keys):
            warnings.append("api_keys contains duplicates; rotation will be uneven")

        if self.api_base and not self.api_base.startswith(("http://", "https://")):
            warnings.append(
                f"api_base '{self.api_base}' does not start with http:// or https://"
            )

        return warnings

    def to_dict(self) -> dict[str, str | int | float | bool | list[str] | None]:
        """Convert to dictionary for serialization.

        Keys are masked so the result is safe to log.
        """
        return {
            "provider": self.provider,
            "model": self.model,
            "api_keys": [_mask(k) for k in self.api_keys],
            "api_base": self.api_base,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LLMConfig":
        """Create LLMConfig from dictionary.

        ``api_key`` is accepted as an alias for a single-entry ``api_keys``.
        """
        keys = data.get("api_keys")
        if keys is None:
            keys = data.get("api_key")
        return cls(
            provider=str(data.get("provider", "")),
            model=str(data.get("model", "")),
            api_keys=parse_api_keys(keys),
            api_base=data.get("api_base") or None,
            temperature=float(data.get("temperature", 0.0)),
            max_tokens=int(data.get("max_tokens", 4096)),
            enabled=bool(data.get("enabled", True)),
        )

    def get_litellm_model_name(self) -> str:
        """Get the model name in LiteLLM format.

        Returns:
            Model name formatted for LiteLLM
        """
        if self.provider == "ollama":
            return f"ollama/{self.model}"
        elif self.provider == "bedrock":
            return f"bedrock/{self.model}"
        elif self.provider == "gemini":
            return f"gemini/{self.model}"
        elif self.provider == "openai":
            return f"openai/{self.model}"
        else:
            # Claude uses anthropic/ prefix in LiteLLM
            return f"anthropic/{self.model}"


def _mask(key: str) -> str:
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"
