"""Logic Horizon report rendering.

Jinja2-based rendering of module summaries to markdown, plus JSON output.
"""

from horizon.templates.renderer import SummaryRenderer

__all__ = ["SummaryRenderer"]
