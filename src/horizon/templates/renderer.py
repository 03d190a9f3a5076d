"""Template renderer for architecture reports.

Renders a ModuleSummary to markdown using Jinja2 templates shipped with
the package.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, select_autoescape

from horizon import __version__
from horizon.models.analysis import ModuleSummary

logger = logging.getLogger(__name__)


def format_datetime(dt: datetime | str | None) -> str:
    """Format datetime for display in reports.

    Args:
        dt: Datetime object or ISO string

    Returns:
        Formatted date string
    """
    if dt is None:
        return "N/A"

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


def clean_narrative(text: str) -> str:
    """Normalize model narrative for markdown.

    Collapses runs of blank lines and strips trailing whitespace per line.
    """
    lines = [line.rstrip() for line in text.strip().splitlines()]
    cleaned: list[str] = []
    for line in lines:
        if not line and cleaned and not cleaned[-1]:
            continue
        cleaned.append(line)
    return "\n".join(cleaned)


class SummaryRenderer:
    """Renders module summaries to markdown or JSON.

    Usage:
        renderer = SummaryRenderer()
        markdown = renderer.render(summary)
    """

    def __init__(self) -> None:
        self._env = Environment(
            loader=PackageLoader("horizon", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["format_datetime"] = format_datetime
        self._env.filters["clean_narrative"] = clean_narrative

    def render(
        self,
        summary: ModuleSummary,
        template_name: str = "ARCHITECTURE.md.j2",
        generated_at: datetime | None = None,
    ) -> str:
        """Render a summary to markdown.

        Args:
            summary: Aggregated summary
            template_name: Template file to use
            generated_at: Timestamp shown in the header (now if None)

        Returns:
            Rendered markdown string

        Raises:
            ValueError: If the template is missing or fails to render
        """
        try:
            template = self._env.get_template(template_name)
        except Exception as e:
            logger.error("Failed to load template %s: %s", template_name, e)
            raise ValueError(f"Template not found: {template_name}") from e

        context = self._build_context(summary, generated_at)

        try:
            rendered = template.render(**context)
        except Exception as e:
            logger.error("Template rendering failed: %s", e)
            raise ValueError(f"Template rendering failed: {e}") from e

        logger.debug("Rendered report (%d characters)", len(rendered))
        return rendered

    def _build_context(
        self,
        summary: ModuleSummary,
        generated_at: datetime | None,
    ) -> dict[str, Any]:
        return {
            "summary": summary,
            "name": Path(summary.folder).name or summary.folder or "project",
            "version": __version__,
            "generated_at": generated_at or datetime.now(UTC),
        }

    def render_json(self, summary: ModuleSummary) -> str:
        """Serialize a summary as indented JSON."""
        return json.dumps(summary.to_dict(), indent=2, ensure_ascii=False) + "\n"

    def render_to_file(
        self,
        summary: ModuleSummary,
        output_path: Path,
        output_format: str = "markdown",
    ) -> Path:
        """Render a summary and write it to a file.

        Args:
            summary: Aggregated summary
            output_path: Path to write output file
            output_format: "markdown" or "json"

        Returns:
            Path to written file
        """
        if output_format == "json":
            content = self.render_json(summary)
        else:
            content = self.render(summary)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        logger.info("Wrote report to %s", output_path)

        return output_path
