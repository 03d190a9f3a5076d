"""Post-processing for structured LLM responses.

Models frequently wrap JSON in markdown code fences even when told not to,
so structured responses that are not already bare JSON pass through
``strip_code_fences`` before they are parsed.
"""

import json
import re
from typing import Any

# ```json ... ``` (or any language tag) wrapping the whole payload
_WRAPPED = re.compile(r"^\s*```[\w-]*[ \t]*\r?\n?(.*?)\r?\n?\s*```\s*$", re.DOTALL)

# A fenced block on its own lines inside surrounding prose
_FENCED_LINES = re.compile(
    r"^[ \t]*```[\w-]*[ \t]*\r?\n(.*?)\r?\n[ \t]*```[ \t]*$", re.DOTALL | re.MULTILINE
)

_OPENING_FENCE = re.compile(r"^\s*```[\w-]*")
_CLOSING_FENCE = re.compile(r"```\s*$")


class MalformedResponseError(ValueError):
    """Response text is not the structured data that was asked for."""

    pass


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence wrapping from a response.

    A fence wrapping the whole payload is removed. Otherwise the first
    fenced block standing on its own lines is extracted from the prose
    around it. A stray opening or closing fence at the edges is dropped.
    Backticks inside the text (for example in a JSON string value) are
    left alone.

    Args:
        text: Raw response text

    Returns:
        Cleaned text
    """
    match = _WRAPPED.match(text) or _FENCED_LINES.search(text)
    if match:
        return match.group(1).strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    return _CLOSING_FENCE.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a response as a single JSON object.

    Bare JSON is parsed as is. Otherwise code fences are stripped and, if
    the cleaned text still has prose around the object, the outermost
    ``{...}`` span is tried.

    Args:
        text: Raw response text

    Returns:
        Parsed object

    Raises:
        MalformedResponseError: If no JSON object can be parsed
    """
    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError:
        data = _parse_unwrapped(strip_code_fences(text))

    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _parse_unwrapped(cleaned: str) -> Any:
    if not cleaned:
        raise MalformedResponseError("empty response")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise MalformedResponseError(f"invalid JSON: {e}") from e
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as inner:
            raise MalformedResponseError(f"invalid JSON: {inner}") from inner
