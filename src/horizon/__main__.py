"""Entry point for running Logic Horizon as a module.

Usage:
    python -m horizon [command] [options]

Example:
    python -m horizon analyze ./my-project --output docs/ARCHITECTURE.md
    python -m horizon file src/main/index.ts
"""

from horizon.cli import app

if __name__ == "__main__":
    app()
