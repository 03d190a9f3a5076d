"""Logic Horizon CLI interface.

Commands:
- analyze: Analyze a project and write an architecture report
- file: Analyze a single file and print its structured analysis
- folder: Summarize one folder and print the narrative
- tree: Print the filtered project tree as JSON
- init: Initialize Logic Horizon configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from horizon import __version__
from horizon.config import HorizonConfig, create_default_config, load_config
from horizon.utils.logging import configure_from_cli, get_logger

app = typer.Typer(
    name="horizon",
    help="LLM-assisted codebase architecture analysis",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: HorizonConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"horizon {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Enable CI mode with JSON log lines"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Logic Horizon - map-reduce architecture analysis for codebases."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


def _build_pipeline():
    """Create the analysis pipeline from the loaded config."""
    from horizon.pipeline import AnalysisPipeline

    try:
        return AnalysisPipeline(config=_config)
    except ValueError as e:
        _logger.error(f"Invalid LLM configuration: {e}")
        raise typer.Exit(1)


def _choose_directory(root: Path | None) -> Path:
    """Resolve the project root, prompting when none was given."""
    if root is None:
        answer = typer.prompt("Project directory", default=str(Path.cwd()))
        root = Path(answer).expanduser()

    root = root.resolve()
    if not root.is_dir():
        _logger.error(f"Not a directory: {root}")
        raise typer.Exit(1)
    return root


# =============================================================================
# analyze command
# =============================================================================


@app.command()
def analyze(
    root: Annotated[
        Path | None,
        typer.Argument(help="Project root to analyze (prompted if omitted)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file path (overrides config)"),
    ] = None,
    format: Annotated[
        str | None,
        typer.Option("--format", "-f", help="Output format: markdown, json"),
    ] = None,
    concurrent: Annotated[
        bool,
        typer.Option("--concurrent", help="Analyze files on a worker pool"),
    ] = False,
    refresh: Annotated[
        bool,
        typer.Option("--refresh", help="Ignore cached analyses"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the report instead of writing it"),
    ] = False,
) -> None:
    """Analyze a project and write an architecture report.

    Every file is analyzed, then all analyses are aggregated into one
    narrative with a Mermaid diagram.

    Exit codes:
        0: Report generated
        1: Fatal error
        2: Report generated, but some files could not be analyzed
    """
    from horizon.templates import SummaryRenderer
    from horizon.utils.progress import ProgressEvent

    config = _config or HorizonConfig()
    root_path = _choose_directory(root)
    output_path = output or Path(config.output.path)
    output_format = format or config.output.format

    if output_format not in {"markdown", "json"}:
        _logger.error(f"Invalid format: {output_format}. Use 'markdown' or 'json'")
        raise typer.Exit(1)

    pipeline = _build_pipeline()
    options = pipeline.default_options()
    options.concurrent = options.concurrent or concurrent
    options.refresh = refresh

    def show_progress(event: ProgressEvent) -> None:
        _logger.info(f"Progress: {event.percent}% ({event.completed}/{event.total})")

    pipeline.progress.subscribe(show_progress)

    _logger.info(f"Analyzing project: {root_path}")
    summary = pipeline.run_analysis(root_path, options)

    renderer = SummaryRenderer()
    try:
        if dry_run:
            if output_format == "json":
                typer.echo(renderer.render_json(summary))
            else:
                typer.echo(renderer.render(summary))
        else:
            written = renderer.render_to_file(summary, output_path, output_format)
            typer.echo(f"\n📄 Report written to: {written}")
    except (OSError, ValueError) as e:
        _logger.error(f"Rendering failed: {e}")
        raise typer.Exit(1)

    if summary.empty or summary.error:
        raise typer.Exit(1 if summary.error else 2)
    if summary.excluded:
        _logger.warning(f"{len(summary.excluded)} file(s) were not analyzed")
        raise typer.Exit(2)
    raise typer.Exit(0)


# =============================================================================
# file command
# =============================================================================


@app.command()
def file(
    path: Annotated[
        Path,
        typer.Argument(help="File to analyze", exists=True, dir_okay=False),
    ],
    refresh: Annotated[
        bool,
        typer.Option("--refresh", help="Ignore cached analyses"),
    ] = False,
) -> None:
    """Analyze a single file and print its analysis as JSON."""
    from horizon.analyzers.file_analyzer import read_file_content

    try:
        content = read_file_content(path)
    except OSError as e:
        _logger.error(f"Could not read {path}: {e}")
        raise typer.Exit(1)

    pipeline = _build_pipeline()
    outcome = pipeline.analyze_file(content, path, refresh=refresh)
    typer.echo(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))

    raise typer.Exit(0 if outcome.ok else 2)


# =============================================================================
# folder command
# =============================================================================


@app.command()
def folder(
    path: Annotated[
        Path,
        typer.Argument(help="Folder to summarize", exists=True, file_okay=False),
    ],
    strategy: Annotated[
        str | None,
        typer.Option("--strategy", "-s", help="Aggregation context: map_reduce, structure"),
    ] = None,
    no_diagram: Annotated[
        bool,
        typer.Option("--no-diagram", help="Request a plain narrative only"),
    ] = False,
    markdown: Annotated[
        bool,
        typer.Option("--markdown", help="Print markdown instead of JSON"),
    ] = False,
) -> None:
    """Summarize one folder (capped at max_files files) and print the result."""
    from dataclasses import replace

    from horizon.analyzers.aggregator import AggregationStrategy
    from horizon.templates import SummaryRenderer

    pipeline = _build_pipeline()
    settings = pipeline.aggregator.settings

    try:
        if strategy is not None:
            settings = replace(settings, strategy=AggregationStrategy(strategy))
    except ValueError:
        _logger.error(f"Invalid strategy: {strategy}. Use 'map_reduce' or 'structure'")
        raise typer.Exit(1)
    if no_diagram:
        settings = replace(settings, with_diagram=False)

    summary = pipeline.analyze_folder(path, settings=settings)

    renderer = SummaryRenderer()
    if markdown:
        typer.echo(renderer.render(summary))
    else:
        typer.echo(renderer.render_json(summary))

    raise typer.Exit(2 if summary.empty or summary.error else 0)


# =============================================================================
# tree command
# =============================================================================


@app.command()
def tree(
    root: Annotated[
        Path | None,
        typer.Argument(help="Project root (prompted if omitted)"),
    ] = None,
) -> None:
    """Print the filtered project tree as JSON."""
    from horizon.analyzers.enumerator import FileEnumerator

    config = _config or HorizonConfig()
    root_path = _choose_directory(root)
    enumerator = FileEnumerator(
        extensions=config.analysis.extensions,
        exclude_dirs=config.analysis.exclude_dirs,
    )
    typer.echo(json.dumps(enumerator.build_tree(root_path), indent=2))


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Initialize Logic Horizon configuration in ./.horizon/config.yaml."""
    horizon_dir = Path(".horizon")
    horizon_dir.mkdir(exist_ok=True)

    config_file = horizon_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config())
    _logger.info(f"Created config: {config_file}")

    typer.echo("\n✅ Logic Horizon configuration initialized")
    typer.echo(f"   Config: {config_file}")
    typer.echo("   Set HORIZON_API_KEYS and llm.api_keys to use a hosted provider")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
