"""Shared pytest fixtures for Logic Horizon tests.

This module provides common fixtures used across unit and integration
tests. Fixtures are organized by category:
- Gateway fixtures: Scripted stand-ins for the completion gateway
- Project fixtures: Small source trees written to tmp_path
- Configuration fixtures: Test configs for various scenarios
"""

from pathlib import Path
from typing import Any

import pytest

from horizon.llm.client import GatewayExhausted
from tests.fixtures import FakeGateway, write_files

# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def fake_gateway() -> FakeGateway:
    """Return a gateway that answers every request successfully."""
    return FakeGateway()


@pytest.fixture
def exhausted_gateway() -> FakeGateway:
    """Return a gateway whose every request exhausts its retry budget."""
    error = GatewayExhausted(4)
    return FakeGateway(file_reply=error, summary_reply=error)


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def electron_project(tmp_path: Path) -> Path:
    """Create a small Electron-style project with excluded directories."""
    return write_files(
        tmp_path / "app",
        {
            "package.json": '{"name": "app", "main": "out/main/index.js"}',
            "src/main/index.ts": "import { app } from 'electron'\napp.whenReady()\n",
            "src/preload/index.ts": "contextBridge.exposeInMainWorld('api', {})\n",
            "src/renderer/App.tsx": "export default function App() { return null }\n",
            "src/lib/format.js": "export const fmt = (s) => s.trim()\n",
            "README.md": "# App\n",
            "node_modules/electron/index.js": "module.exports = {}\n",
            "dist/bundle.js": "console.log(1)\n",
            ".git/config.json": "{}\n",
        },
    )


@pytest.fixture
def minimal_project(tmp_path: Path) -> Path:
    """Create a root holding one analyzable file and one excluded file."""
    return write_files(
        tmp_path / "proj",
        {
            "a.ts": "export const a = 1\n",
            "node_modules/b.ts": "export const b = 2\n",
        },
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def full_config() -> dict[str, Any]:
    """Return a complete Logic Horizon configuration with all options."""
    return {
        "llm": {
            "provider": "claude",
            "model": "claude-3-5-haiku-latest",
            "api_keys": "key-one, key-two",
            "temperature": 0.1,
            "max_tokens": 2048,
        },
        "analysis": {
            "max_chars": 4000,
            "max_files": 10,
            "max_file_bytes": 100000,
            "max_context_chars": 20000,
            "inter_call_delay": 0,
            "retry_delay": 0,
            "attempts_per_credential": 3,
            "cache_size": 16,
            "concurrency": "concurrent",
            "max_workers": 2,
            "strategy": "structure",
            "diagram": False,
        },
        "output": {
            "path": "docs/ARCH.md",
            "format": "json",
        },
    }
