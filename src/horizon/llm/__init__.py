"""LLM integration module for Logic Horizon.

Provides the LiteLLM client wrapper, the credential-rotating completion
gateway, prompt builders and structured-response parsing.
"""

from horizon.llm.client import (
    CompletionGateway,
    CredentialPool,
    GatewayExhausted,
    LLMClient,
    LLMError,
    LLMResponse,
    RetryPolicy,
    UpstreamError,
    create_gateway,
)
from horizon.llm.parsing import MalformedResponseError, parse_json_object, strip_code_fences
from horizon.llm.prompts import (
    AGGREGATION_DIAGRAM_SYSTEM_PROMPT,
    AGGREGATION_NARRATIVE_SYSTEM_PROMPT,
    FILE_ANALYSIS_SYSTEM_PROMPT,
    STRUCTURE_DIAGRAM_SYSTEM_PROMPT,
    STRUCTURE_SYSTEM_PROMPT,
    build_aggregation_prompt,
    build_file_prompt,
    build_structure_prompt,
    get_aggregation_system_prompt,
    truncate_content,
)

__all__ = [
    "AGGREGATION_DIAGRAM_SYSTEM_PROMPT",
    "AGGREGATION_NARRATIVE_SYSTEM_PROMPT",
    "CompletionGateway",
    "CredentialPool",
    "FILE_ANALYSIS_SYSTEM_PROMPT",
    "GatewayExhausted",
    "LLMClient",
    "LLMError",
    "LLMResponse",
    "MalformedResponseError",
    "RetryPolicy",
    "STRUCTURE_DIAGRAM_SYSTEM_PROMPT",
    "STRUCTURE_SYSTEM_PROMPT",
    "UpstreamError",
    "build_aggregation_prompt",
    "build_file_prompt",
    "build_structure_prompt",
    "create_gateway",
    "get_aggregation_system_prompt",
    "parse_json_object",
    "strip_code_fences",
    "truncate_content",
]
