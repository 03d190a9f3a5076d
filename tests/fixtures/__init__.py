"""Test helpers for Logic Horizon.

This package provides canned model responses, a scripted stand-in for the
completion gateway, and a helper to write small source trees.
"""

import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any


def analysis_json(overview: str = "Handles application startup.", **extra: Any) -> str:
    """Return a well-formed per-file analysis response."""
    payload = {
        "overview": overview,
        "technicalDepth": extra.get("technicalDepth", "Creates the main window."),
        "exports": extra.get("exports", "createWindow"),
        "symbols": extra.get(
            "symbols",
            [{"name": "createWindow", "kind": "function", "description": "Opens a window"}],
        ),
    }
    return json.dumps(payload)


def summary_json(
    narrative: str = "The main process owns the window.",
    diagram: str = "graph TD\nA-->B",
) -> str:
    """Return a well-formed narrative/diagram response."""
    return json.dumps({"narrative": narrative, "diagram": diagram})


class FakeGateway:
    """Scripted completion gateway.

    Each call records (prompt, system_prompt). Replies come from the
    ``responder`` callable when given, otherwise per-file prompts get
    ``file_reply`` and aggregation prompts get ``summary_reply``. A reply
    that is an exception instance is raised instead of returned.
    """

    def __init__(
        self,
        file_reply: str | Exception | None = None,
        summary_reply: str | Exception | None = None,
        responder: Callable[[str, str | None], "str | Exception"] | None = None,
    ) -> None:
        self.file_reply = file_reply if file_reply is not None else analysis_json()
        self.summary_reply = summary_reply if summary_reply is not None else summary_json()
        self.responder = responder
        self.calls: list[tuple[str, str | None]] = []
        self._lock = threading.Lock()

    @property
    def file_calls(self) -> list[tuple[str, str | None]]:
        return [c for c in self.calls if c[0].startswith("Category:")]

    @property
    def summary_calls(self) -> list[tuple[str, str | None]]:
        return [c for c in self.calls if c[0].startswith("Module:")]

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        with self._lock:
            self.calls.append((prompt, system_prompt))

        if self.responder is not None:
            reply = self.responder(prompt, system_prompt)
        elif prompt.startswith("Category:"):
            reply = self.file_reply
        else:
            reply = self.summary_reply

        if isinstance(reply, Exception):
            raise reply
        return reply


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Write a {relative_path: content} mapping under root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
