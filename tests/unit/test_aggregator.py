"""Unit tests for module aggregation."""

import json
from pathlib import Path

import pytest

from horizon.analyzers.aggregator import (
    AggregationStrategy,
    AggregatorSettings,
    ModuleAggregator,
    render_structure_tree,
)
from horizon.analyzers.file_analyzer import FileAnalyzer
from horizon.llm.client import GatewayExhausted
from horizon.llm.prompts import (
    AGGREGATION_NARRATIVE_SYSTEM_PROMPT,
    STRUCTURE_DIAGRAM_SYSTEM_PROMPT,
)
from horizon.models.analysis import AnalysisOutcome, AnalysisResult, ErrorKind, FileRecord
from horizon.utils.cancellation import AnalysisCancelled, CancellationToken
from tests.fixtures import FakeGateway, analysis_json, write_files


def _aggregator(gateway: FakeGateway, **settings) -> ModuleAggregator:
    return ModuleAggregator(
        gateway, FileAnalyzer(gateway), settings=AggregatorSettings(**settings)
    )


def _success(root: Path, relative: str, overview: str = "Does things.") -> AnalysisOutcome:
    return AnalysisOutcome.success(
        FileRecord.from_path(root / relative, root), AnalysisResult(overview=overview)
    )


def _failure(root: Path, relative: str) -> AnalysisOutcome:
    return AnalysisOutcome.failure(
        FileRecord.from_path(root / relative, root), ErrorKind.GATEWAY_EXHAUSTED, "boom"
    )


class TestAggregatorSettings:
    """Tests for AggregatorSettings."""

    def test_string_strategy(self) -> None:
        """Test that strategy names are converted."""
        settings = AggregatorSettings(strategy="structure")

        assert settings.strategy is AggregationStrategy.STRUCTURE

    def test_positive_limits(self) -> None:
        """Test validation."""
        with pytest.raises(ValueError, match="max_files must be positive"):
            AggregatorSettings(max_files=0)


class TestAggregateOutcomes:
    """Tests for ModuleAggregator.aggregate with precomputed outcomes."""

    def test_no_usable_analyses(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test that zero usable outcomes yield an empty summary with no request."""
        outcomes = [_failure(tmp_path, "a.ts"), _failure(tmp_path, "b.ts")]

        summary = _aggregator(fake_gateway).aggregate(tmp_path, outcomes)

        assert summary.empty
        assert fake_gateway.calls == []
        assert summary.excluded == ["a.ts", "b.ts"]
        assert len(summary.diagnostics) == 2

    def test_empty_outcome_list(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test an empty folder."""
        summary = _aggregator(fake_gateway).aggregate(tmp_path, [])

        assert summary.empty
        assert summary.narrative.startswith("No analysis available for")

    def test_partial_failures_are_diagnosed(
        self, fake_gateway: FakeGateway, tmp_path: Path
    ) -> None:
        """Test that failed files are listed while the rest are aggregated."""
        outcomes = [_success(tmp_path, "a.ts"), _failure(tmp_path, "b.ts")]

        summary = _aggregator(fake_gateway).aggregate(tmp_path, outcomes)

        assert not summary.empty
        assert summary.analyzed == ["a.ts"]
        assert summary.excluded == ["b.ts"]
        assert summary.diagnostics == ["b.ts: Analysis request failed: boom"]
        assert len(fake_gateway.summary_calls) == 1
        assert "b.ts" not in fake_gateway.summary_calls[0][0]

    def test_narrative_and_diagram(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test parsing the narrative/diagram pair."""
        summary = _aggregator(fake_gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert summary.narrative == "The main process owns the window."
        assert summary.diagram == "graph TD\nA-->B"

    def test_story_mermaid_aliases(self, tmp_path: Path) -> None:
        """Test the alternative response keys."""
        reply = "```json\n" + json.dumps({"story": "Story.", "mermaid": "graph LR\nX-->Y"}) + "\n```"
        gateway = FakeGateway(summary_reply=reply)

        summary = _aggregator(gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert summary.narrative == "Story."
        assert summary.diagram == "graph LR\nX-->Y"

    def test_fenced_diagram_is_unwrapped(self, tmp_path: Path) -> None:
        """Test a diagram that itself carries a mermaid fence."""
        reply = json.dumps({"narrative": "N.", "diagram": "```mermaid\ngraph TD\nA-->B\n```"})
        gateway = FakeGateway(summary_reply=reply)

        summary = _aggregator(gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert summary.diagram == "graph TD\nA-->B"

    def test_backticks_in_narrative(self, tmp_path: Path) -> None:
        """Test a narrative that quotes a fence inline."""
        reply = json.dumps({"narrative": "Docs use ```mermaid``` blocks.", "diagram": "graph TD"})
        gateway = FakeGateway(summary_reply=reply)

        summary = _aggregator(gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert summary.narrative == "Docs use ```mermaid``` blocks."
        assert summary.diagram == "graph TD"
        assert summary.diagnostics == []

    def test_non_json_diagram_reply_falls_back(self, tmp_path: Path) -> None:
        """Test that prose instead of JSON is kept as the narrative."""
        gateway = FakeGateway(summary_reply="The app boots and renders.")

        summary = _aggregator(gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert summary.narrative == "The app boots and renders."
        assert summary.diagram is None
        assert any("not valid JSON" in d for d in summary.diagnostics)

    def test_prose_only(self, tmp_path: Path) -> None:
        """Test the narrative-only request."""
        gateway = FakeGateway(summary_reply="Plain prose.")

        summary = _aggregator(gateway, with_diagram=False).aggregate(
            tmp_path, [_success(tmp_path, "a.ts")]
        )

        assert summary.narrative == "Plain prose."
        assert summary.diagram is None
        assert gateway.summary_calls[0][1] == AGGREGATION_NARRATIVE_SYSTEM_PROMPT

    def test_aggregation_failure(self, tmp_path: Path) -> None:
        """Test that an exhausted reduce request is reported on the summary."""
        gateway = FakeGateway(summary_reply=GatewayExhausted(2))

        summary = _aggregator(gateway).aggregate(tmp_path, [_success(tmp_path, "a.ts")])

        assert not summary.empty
        assert summary.error == "All 2 attempts failed"
        assert summary.narrative.startswith("Aggregation failed")

    def test_structure_strategy(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test that only the annotated tree reaches the model."""
        outcomes = [
            AnalysisOutcome.success(
                FileRecord.from_path(tmp_path / "src" / "a.ts", tmp_path),
                AnalysisResult(overview="Boots.", technical_depth="SECRET DETAIL"),
            )
        ]

        _aggregator(fake_gateway, strategy="structure").aggregate(tmp_path, outcomes)

        prompt, system_prompt = fake_gateway.summary_calls[0]
        assert "File tree:\nsrc/\n  a.ts: Boots." in prompt
        assert "SECRET DETAIL" not in prompt
        assert system_prompt == STRUCTURE_DIAGRAM_SYSTEM_PROMPT

    def test_cancelled_before_reduce(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test the checkpoint before the aggregation request."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelled):
            _aggregator(fake_gateway).aggregate(
                tmp_path, [_success(tmp_path, "a.ts")], cancel=token
            )

        assert fake_gateway.calls == []


class TestRenderStructureTree:
    """Tests for render_structure_tree."""

    def test_folders_first_alphabetical(self, tmp_path: Path) -> None:
        """Test ordering within each level."""
        outcomes = [
            _success(tmp_path, "z.ts", "Zed."),
            _success(tmp_path, "src/b.ts", "Bee."),
            _success(tmp_path, "a.ts", "Ay.\nMore detail."),
            _success(tmp_path, "lib/c.ts", "See."),
            _failure(tmp_path, "broken.ts"),
        ]

        tree = render_structure_tree(outcomes)

        assert tree.splitlines() == [
            "lib/",
            "  c.ts: See.",
            "src/",
            "  b.ts: Bee.",
            "a.ts: Ay.",
            "z.ts: Zed.",
        ]


class TestAggregateFolder:
    """Tests for ModuleAggregator.aggregate flattening a folder."""

    @pytest.fixture
    def big_folder(self, tmp_path: Path) -> Path:
        """Create a folder with 45 analyzable files."""
        return write_files(
            tmp_path / "big", {f"f{i:02d}.ts": f"export const v{i} = {i}" for i in range(45)}
        )

    @pytest.mark.parametrize("max_workers", [1, 4])
    def test_file_cap(self, fake_gateway: FakeGateway, big_folder: Path, max_workers: int) -> None:
        """Test that only the first max_files files are analyzed."""
        summary = _aggregator(fake_gateway, max_workers=max_workers).aggregate(big_folder)

        assert len(fake_gateway.file_calls) == 30
        assert len(fake_gateway.summary_calls) == 1
        assert summary.analyzed == [f"f{i:02d}.ts" for i in range(30)]
        assert summary.excluded == [f"f{i:02d}.ts" for i in range(30, 45)]
        assert len(summary.diagnostics) == 15
        assert summary.diagnostics[0] == "f30.ts: Excluded by file cap (30)"

    def test_reuses_cached_analyses(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test that a second folder summary only repeats the reduce request."""
        folder = write_files(tmp_path / "m", {"a.ts": "a", "b.ts": "b"})
        aggregator = _aggregator(fake_gateway)

        aggregator.aggregate(folder)
        aggregator.aggregate(folder)

        assert len(fake_gateway.file_calls) == 2
        assert len(fake_gateway.summary_calls) == 2

    def test_size_ceiling(self, fake_gateway: FakeGateway, tmp_path: Path) -> None:
        """Test that oversized files are excluded without a request."""
        folder = write_files(tmp_path / "m", {"big.ts": "x" * 200, "small.ts": "x"})

        summary = _aggregator(fake_gateway, max_file_bytes=100).aggregate(folder)

        assert len(fake_gateway.file_calls) == 1
        assert summary.excluded == ["big.ts"]
        assert summary.diagnostics[0].startswith("big.ts: File exceeds size ceiling")

    def test_all_files_fail(self, tmp_path: Path) -> None:
        """Test that a folder of malformed analyses makes no reduce request."""
        folder = write_files(tmp_path / "m", {"a.ts": "a"})
        gateway = FakeGateway(file_reply="not json")

        summary = _aggregator(gateway).aggregate(folder)

        assert summary.empty
        assert gateway.summary_calls == []

    def test_summary_prompt_contains_analyses(self, tmp_path: Path) -> None:
        """Test that per-file overviews reach the reduce request."""
        folder = write_files(tmp_path / "m", {"main/index.ts": "a"})
        gateway = FakeGateway(file_reply=analysis_json("Starts the Electron app."))

        _aggregator(gateway).aggregate(folder)

        prompt = gateway.summary_calls[0][0]
        assert prompt.startswith("Module: m\n")
        assert "main/index.ts (Main)" in prompt
        assert "Starts the Electron app." in prompt
