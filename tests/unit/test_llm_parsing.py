"""Unit tests for structured response post-processing."""

import json

import pytest

from horizon.llm.parsing import MalformedResponseError, parse_json_object, strip_code_fences


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_json_fence(self) -> None:
        """Test a ```json fenced payload."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        """Test a fence with no language tag."""
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_fence(self) -> None:
        """Test that text around the fenced block is dropped."""
        text = 'Here you go:\n```json\n{"a": 1}\n```\nHope this helps.'

        assert strip_code_fences(text) == '{"a": 1}'

    def test_unterminated_fence(self) -> None:
        """Test that a stray opening fence is removed."""
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_unfenced_text(self) -> None:
        """Test that plain text is only stripped."""
        assert strip_code_fences("  plain  ") == "plain"

    def test_inline_backticks_kept(self) -> None:
        """Test that backticks inside the text are not treated as a wrapper."""
        text = '{"overview": "Renders ```mermaid``` blocks"}'

        assert strip_code_fences(text) == text

    def test_wrapper_around_inner_fences(self) -> None:
        """Test that the outer fence wins over fences inside the payload."""
        text = '```json\n{"overview": "Renders ```mermaid``` blocks"}\n```'

        assert strip_code_fences(text) == '{"overview": "Renders ```mermaid``` blocks"}'

    def test_mermaid_fence(self) -> None:
        """Test a diagram wrapped in a mermaid fence."""
        assert strip_code_fences("```mermaid\ngraph TD\nA-->B\n```") == "graph TD\nA-->B"


class TestParseJsonObject:
    """Tests for parse_json_object."""

    def test_plain_object(self) -> None:
        """Test an unfenced object."""
        assert parse_json_object('{"overview": "x"}') == {"overview": "x"}

    def test_fenced_object(self) -> None:
        """Test a fenced object."""
        assert parse_json_object('```json\n{"overview": "x"}\n```') == {"overview": "x"}

    def test_backticks_inside_string_value(self) -> None:
        """Test that bare JSON containing fences in a value parses unchanged."""
        text = '{"overview": "Renders ```mermaid``` blocks", "symbols": []}'

        assert parse_json_object(text) == {
            "overview": "Renders ```mermaid``` blocks",
            "symbols": [],
        }

    def test_fenced_object_with_fenced_value(self) -> None:
        """Test a fenced reply whose diagram value carries its own fence."""
        inner = json.dumps({"narrative": "N.", "diagram": "```mermaid\ngraph TD\n```"})

        data = parse_json_object(f"```json\n{inner}\n```")

        assert data["diagram"] == "```mermaid\ngraph TD\n```"

    def test_object_inside_prose(self) -> None:
        """Test the outermost-brace fallback."""
        text = 'Sure! {"overview": "x", "symbols": [{"name": "a"}]} Done.'

        assert parse_json_object(text)["symbols"] == [{"name": "a"}]

    def test_empty_response(self) -> None:
        """Test that an empty response is malformed."""
        with pytest.raises(MalformedResponseError, match="empty response"):
            parse_json_object("```\n```")

    def test_invalid_json(self) -> None:
        """Test that non-JSON prose is malformed."""
        with pytest.raises(MalformedResponseError, match="invalid JSON"):
            parse_json_object("this file starts the app")

    def test_non_object(self) -> None:
        """Test that a JSON array is rejected."""
        with pytest.raises(MalformedResponseError, match="expected a JSON object"):
            parse_json_object("[1, 2]")

    def test_is_value_error(self) -> None:
        """Test that callers can catch ValueError."""
        assert issubclass(MalformedResponseError, ValueError)
