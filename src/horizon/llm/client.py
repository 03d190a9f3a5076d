"""LLM client and completion gateway using LiteLLM.

Provides a consistent interface for multiple LLM providers, plus the
gateway that rotates a credential pool and retries failed requests with a
fixed delay. Sampling is kept at a fixed low temperature so repeated runs
produce near-identical analyses.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import litellm

from horizon.models.llm_config import LLMConfig

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM completion.

    Attributes:
        content: Generated text content
        model: Model that generated the response
        usage: Token usage statistics
        finish_reason: Reason for completion (stop, length, etc.)
    """

    content: str
    model: str
    usage: dict[str, int]
    finish_reason: str | None = None


class LLMError(Exception):
    """Exception raised for LLM-related errors."""

    pass


class UpstreamError(LLMError):
    """A single request to the text-generation provider failed.

    Attributes:
        status: HTTP-like status reported by the provider, if any
        message: Provider error message
    """

    def __init__(self, status: int | None, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"[{status if status is not None else 'n/a'}] {message}")


class GatewayExhausted(LLMError):
    """Every attempt allowed by the retry budget failed."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"All {attempts} attempts failed{detail}")


class LLMClient:
    """Unified LLM client using LiteLLM.

    Supports multiple providers through a single interface:
    - Claude (Anthropic)
    - Gemini (Google)
    - Ollama (local)
    - Bedrock (AWS)
    - OpenAI-compatible endpoints

    The client is stateless with respect to credentials; the key for each
    request is chosen by the caller.
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize LLM client with configuration.

        Args:
            config: LLM configuration with provider, model and endpoint
        """
        self.config = config

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        api_key: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from the LLM.

        Args:
            prompt: User prompt for the LLM
            system_prompt: Optional system prompt
            max_tokens: Override max_tokens from config
            api_key: Credential for this request

        Returns:
            LLMResponse with generated content

        Raises:
            UpstreamError: If the request fails or the response is unusable
        """
        messages: list[dict[str, str]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        completion_kwargs: dict = {
            "model": self.config.get_litellm_model_name(),
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }
        if api_key:
            completion_kwargs["api_key"] = api_key
        if self.config.api_base:
            completion_kwargs["api_base"] = self.config.api_base

        try:
            response = litellm.completion(**completion_kwargs)
        except litellm.exceptions.AuthenticationError as e:
            raise UpstreamError(
                getattr(e, "status_code", 401),
                f"Authentication failed for {self.config.provider}: {e}",
            ) from e
        except litellm.exceptions.RateLimitError as e:
            raise UpstreamError(
                getattr(e, "status_code", 429),
                f"Rate limit exceeded for {self.config.provider}: {e}",
            ) from e
        except litellm.exceptions.APIConnectionError as e:
            raise UpstreamError(
                getattr(e, "status_code", None),
                f"Connection failed to {self.config.provider}: {e}",
            ) from e
        except Exception as e:
            raise UpstreamError(
                getattr(e, "status_code", None), f"LLM completion failed: {e}"
            ) from e

        try:
            choice = response.choices[0]
            content = choice.message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise UpstreamError(None, f"Malformed completion payload: {e}") from e

        usage = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return LLMResponse(
            content=content,
            model=getattr(response, "model", None) or self.config.model,
            usage=usage,
            finish_reason=getattr(choice, "finish_reason", None),
        )


class CredentialPool:
    """Ordered credentials with a rotating cursor.

    ``next()`` is atomic, so concurrent callers never receive the same slot
    in the same turn. An empty pool hands out None, meaning "let the provider
    pick up credentials from its environment".
    """

    def __init__(self, keys: list[str] | None = None) -> None:
        self._keys = list(keys or [])
        self._cursor = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def cursor(self) -> int:
        """Index of the credential the next call will return."""
        return self._cursor

    def next(self) -> str | None:
        """Return the current credential and advance the cursor."""
        with self._lock:
            if not self._keys:
                return None
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
            return key


@dataclass
class RetryPolicy:
    """Fixed-delay retry strategy.

    Attributes:
        delay_seconds: Pause after a failed attempt that will be retried
        attempts_per_credential: Budget multiplier per pool entry
        sleep: Blocking sleep function (injectable for tests)
    """

    delay_seconds: float = 1.0
    attempts_per_credential: int = 2
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must not be negative. Got: {self.delay_seconds}")
        if self.attempts_per_credential < 1:
            raise ValueError(
                f"attempts_per_credential must be at least 1. Got: {self.attempts_per_credential}"
            )

    def max_attempts(self, pool_size: int) -> int:
        """Total attempt budget for a pool of pool_size credentials."""
        return max(pool_size, 1) * self.attempts_per_credential

    def wait(self, attempt: int) -> None:
        """Pause after a failed attempt (delay does not grow with attempt)."""
        if self.delay_seconds > 0:
            self.sleep(self.delay_seconds)

    @classmethod
    def immediate(cls, attempts_per_credential: int = 2) -> "RetryPolicy":
        """Policy that retries without waiting."""
        return cls(delay_seconds=0.0, attempts_per_credential=attempts_per_credential)


class CompletionGateway:
    """Round-robin, fixed-delay retrying front for the LLM client.

    Every attempt takes the next credential from the pool. After
    ``max(len(pool), 1) * attempts_per_credential`` failures the gateway
    raises GatewayExhausted.
    """

    def __init__(
        self,
        client: LLMClient,
        pool: CredentialPool | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.pool = pool if pool is not None else CredentialPool(client.config.api_keys)
        self.retry = retry or RetryPolicy()

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion, rotating credentials on failure.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            max_tokens: Override max_tokens from config

        Returns:
            Generated text

        Raises:
            GatewayExhausted: If every attempt failed
        """
        max_attempts = self.retry.max_attempts(len(self.pool))
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            key = self.pool.next()
            try:
                response = self.client.complete(
                    prompt,
                    system_prompt=system_prompt,
                    max_tokens=max_tokens,
                    api_key=key,
                )
            except UpstreamError as e:
                last_error = e
                logger.warning(
                    "[API Fail] Attempt %d/%d | Status: %s | Error: %s",
                    attempt,
                    max_attempts,
                    e.status,
                    e.message,
                )
                if attempt < max_attempts:
                    self.retry.wait(attempt)
                continue

            logger.debug(
                "Completion succeeded on attempt %d (%d tokens)",
                attempt,
                response.usage.get("total_tokens", 0),
            )
            return response.content

        raise GatewayExhausted(max_attempts, last_error)


def create_gateway(
    config: LLMConfig,
    retry: RetryPolicy | None = None,
) -> CompletionGateway:
    """Create a completion gateway from configuration.

    Args:
        config: LLM configuration
        retry: Retry policy (fixed one-second delay if None)

    Returns:
        Configured CompletionGateway instance

    Raises:
        ValueError: If LLM is disabled in config
    """
    if not config.enabled:
        raise ValueError("LLM is disabled in configuration")

    return CompletionGateway(LLMClient(config), CredentialPool(config.api_keys), retry)
