"""MCP prompts: multi-tool workflow templates for GitLab CI diagnostics."""

from __future__ import annotations

from pathlib import Path
from string import Template

from fastmcp.prompts.prompt import Message

from ._helpers import _load_file, _parse_pipeline_ref
from .gitlab import mcp

_PROMPTS_DIR = str(Path(__file__).resolve().parent.parent / "resources" / "prompts")


def _render(filename: str, **kwargs: str) -> str:
    """Load a prompt template and substitute variables safely.

    Uses string.Template ($var) instead of str.format({var}) to avoid
    KeyError when parameter values contain curly braces.
    """
    return Template(_load_file(_PROMPTS_DIR, filename)).safe_substitute(kwargs)


@mcp.prompt(tags={"gitlab", "ci"})
def diagnose_pipeline(project_path: str, pipeline_id: str = "") -> list[Message]:
    """Diagnose a failed pipeline: find failed jobs, read their logs,
    inspect artifacts, and suggest fixes.

    pipeline_id accepts a full pipeline URL
    (e.g. https://gitlab.com/group/project/-/pipelines/999). When empty, the
    most recently updated pipeline is diagnosed.
    """
    pipeline_id = _parse_pipeline_ref(pipeline_id)
    text = _render(
        "diagnose-pipeline.md",
        project_path=project_path,
        pipeline_label=pipeline_id or "latest",
        pipeline_arg=f' with `pipeline_id="{pipeline_id}"`' if pipeline_id else "",
    )
    target = f"pipeline {pipeline_id}" if pipeline_id else "the latest pipeline"
    return [
        Message(role="user", content=text),
        Message(
            role="assistant",
            content=(
                f"I'll diagnose {target} of the repository at {project_path}. "
                "Let me fetch the pipeline details and check for failed jobs."
            ),
        ),
    ]
