"""Logic Horizon - LLM-assisted codebase architecture analysis.

Logic Horizon walks a project's file tree, asks a text-generation service for a
per-file semantic summary, caches those summaries for the session and reduces
them into a project-level architectural narrative with an optional diagram.

Core principles:
- Map-Reduce: Files are analyzed independently, then aggregated once
- Errors as Values: One bad file never aborts a run
- Credential Rotation: A pool of keys absorbs per-key rate limiting
- Near-Determinism: Low, fixed sampling temperature for every request
- Bounded Cost: Inputs are truncated and aggregation is capped
"""

__version__ = "0.1.0"
__author__ = "Logic Horizon Contributors"
