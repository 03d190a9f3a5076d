"""LLM prompt templates for file analysis and module aggregation.

Provides the system prompts and prompt builders for the two stages:
- Map: one structured JSON analysis per file
- Reduce: one narrative (optionally with a Mermaid diagram) per folder
"""

from horizon.models.analysis import AnalysisOutcome, FileRecord

# =============================================================================
# Shared Rules
# =============================================================================

_JSON_ONLY_RULES = """
OUTPUT RULES - YOU MUST FOLLOW THESE:
1. Respond with a single JSON object and nothing else.
2. Do NOT wrap the JSON in markdown code fences (no ```).
3. Do NOT add commentary before or after the JSON.
4. Use double quotes for every key and string value.
"""

_FACTUAL_RULES = """
WRITING RULES:
- State what the code does definitively. Do not hedge ("appears to", "likely").
- Use the concrete names found in the code (functions, classes, channels, files).
- If something cannot be determined from the input, leave the field empty.
"""

# =============================================================================
# Map Stage
# =============================================================================

FILE_ANALYSIS_SYSTEM_PROMPT = (
    "You are a senior software architect reviewing one source file of a larger "
    "project. Describe the file's role in the system.\n"
    + _FACTUAL_RULES
    + _JSON_ONLY_RULES
    + """
The JSON object MUST have exactly this shape:
{
  "overview": "1-2 sentences: the file's responsibility in the project",
  "technicalDepth": "notable implementation details: patterns, state, I/O, concurrency",
  "exports": "comma-separated public surface (functions, classes, constants)",
  "symbols": [
    {"name": "symbolName", "kind": "function|class|interface|constant|type|component", "description": "one line"}
  ]
}
List symbols in source order.
"""
)


def truncate_content(content: str, max_chars: int) -> str:
    """Cut content to at most max_chars characters.

    Anything past the cutoff is invisible to the analysis.
    """
    if max_chars <= 0 or len(content) <= max_chars:
        return content
    return content[:max_chars]


def build_file_prompt(record: FileRecord, content: str, max_chars: int) -> str:
    """Build the user prompt for a single file.

    Args:
        record: File identity and category
        content: Full file content
        max_chars: Truncation budget for the code body

    Returns:
        Prompt text
    """
    code = truncate_content(content, max_chars)
    note = ""
    if len(code) < len(content):
        note = f"\n(Truncated to the first {max_chars} of {len(content)} characters.)"
    return (
        f"Category: {record.category.value}\n"
        f"File: {record.relative_path}\n"
        f"Code:{note}\n{code}"
    )


# =============================================================================
# Reduce Stage
# =============================================================================

_ANALYSES_INTRO = (
    "You are a software architect. From the per-file analyses provided, describe "
    "the module: the responsibilities of each part and how the parts collaborate "
    "(call flow, data flow, process boundaries).\n"
)

_STRUCTURE_INTRO = (
    "You are a software architect. You are given the file tree of a module, "
    "where each file is annotated with a one-line summary. Infer the module's "
    "responsibilities and how its parts collaborate.\n"
)

_PROSE_FORMAT = "Respond in plain prose paragraphs. Do not use markdown headings.\n"

_DIAGRAM_FORMAT = (
    _JSON_ONLY_RULES
    + """
The JSON object MUST have exactly this shape:
{
  "narrative": "detailed description of responsibilities and collaboration logic",
  "diagram": "graph TD\\nsubgraph Main\\n...\\nend"
}
In "diagram", draw the collaboration as a Mermaid flowchart with one subgraph
per top-level folder and short node ids. Escape newlines inside JSON strings as \\n.
"""
)

AGGREGATION_NARRATIVE_SYSTEM_PROMPT = _ANALYSES_INTRO + _FACTUAL_RULES + _PROSE_FORMAT

AGGREGATION_DIAGRAM_SYSTEM_PROMPT = _ANALYSES_INTRO + _FACTUAL_RULES + _DIAGRAM_FORMAT

STRUCTURE_SYSTEM_PROMPT = _STRUCTURE_INTRO + _FACTUAL_RULES + _PROSE_FORMAT

STRUCTURE_DIAGRAM_SYSTEM_PROMPT = _STRUCTURE_INTRO + _FACTUAL_RULES + _DIAGRAM_FORMAT


def get_aggregation_system_prompt(with_diagram: bool, structure_only: bool = False) -> str:
    """Return the reduce-stage system prompt.

    Args:
        with_diagram: Ask for a narrative/diagram JSON pair instead of prose
        structure_only: Context is an annotated file tree, not analyses
    """
    if structure_only:
        return STRUCTURE_DIAGRAM_SYSTEM_PROMPT if with_diagram else STRUCTURE_SYSTEM_PROMPT
    if with_diagram:
        return AGGREGATION_DIAGRAM_SYSTEM_PROMPT
    return AGGREGATION_NARRATIVE_SYSTEM_PROMPT


def format_outcome_entry(outcome: AnalysisOutcome) -> str:
    """Format one successful analysis for the aggregation context."""
    result = outcome.result
    assert result is not None
    lines = [
        f"## {outcome.record.relative_path} ({outcome.record.category.value})",
        f"Overview: {result.summary_line}",
    ]
    if result.exports:
        lines.append(f"Exports: {result.exports}")
    if result.technical_depth:
        lines.append(f"Technical depth: {result.technical_depth}")
    return "\n".join(lines)


def build_aggregation_prompt(
    folder_name: str,
    outcomes: list[AnalysisOutcome],
    max_context_chars: int,
) -> str:
    """Build the reduce-stage user prompt.

    Args:
        folder_name: Display name of the folder
        outcomes: Successful per-file outcomes, in enumeration order
        max_context_chars: Bound on the serialized context

    Returns:
        Prompt text
    """
    context = "\n\n".join(format_outcome_entry(o) for o in outcomes)
    context = truncate_content(context, max_context_chars)
    return (
        f"Module: {folder_name}\n"
        f"Files analyzed: {len(outcomes)}\n\n"
        f"Per-file analyses:\n{context}"
    )


def build_structure_prompt(folder_name: str, tree: str, max_context_chars: int) -> str:
    """Build the structure-only reduce prompt from a rendered tree."""
    return (
        f"Module: {folder_name}\n\n"
        f"File tree:\n{truncate_content(tree, max_context_chars)}"
    )
