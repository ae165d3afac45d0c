"""GitLab CI MCP server: all tool registrations."""

from __future__ import annotations

import json
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from pydantic import Field

from .. import downloads, pipelines
from ..config import GitLabCIConfig
from ..models.results import OperationResult
from ._helpers import _parse_job_ref, _parse_pipeline_ref


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    # Not validated here: a missing token is reported by each tool call.
    yield {"config": GitLabCIConfig.from_env()}


mcp = FastMCP(
    name="GitLab CI MCP Server",
    instructions=(
        "Inspects GitLab CI for the Git repository at a local path"
        ": pipelines, jobs, job logs, and artifacts. Always pass the absolute"
        " path of the project directory you are working in as project_path."
    ),
    lifespan=lifespan,
)

_PROJECT_PATH_DESC = (
    "Absolute path of the project directory the agent is working in"
    " (the Git repository is searched from here upwards)"
)

_HINTS = {
    "NotFound": "Pass the absolute path of a directory inside a Git repository.",
    "NoRemoteConfigured": (
        "Configure the remote (git remote add origin <url>) or set GITLAB_REMOTE "
        "to the remote that points at GitLab."
    ),
    "NotATargetHost": (
        "Only GitLab remotes are supported: https://gitlab.example.com/group/project.git, "
        "git@gitlab.example.com:group/project.git, "
        "ssh://git@gitlab.example.com/group/project.git. "
        "List self-hosted hosts without 'gitlab' in their name in GITLAB_HOSTS."
    ),
    "MalformedRemoteUrl": "The remote URL must contain both a namespace and a project name.",
    "MissingCredential": "Set GITLAB_TOKEN to a token with 'read_api' scope.",
    "TransportError": "Check network access to the GitLab host and GITLAB_SSL_VERIFY.",
    "InvalidArgument": "Check the tool arguments: IDs are numeric and project_path is required.",
}


def _get_config(ctx: Context) -> GitLabCIConfig:
    return ctx.request_context.lifespan_context["config"]


def _hint(result: dict[str, Any]) -> str | None:
    status = result.get("status_code")
    if status in (401, 403):
        return "Check GITLAB_TOKEN permissions. Token needs 'read_api' scope."
    if status == 404:
        return "Verify the pipeline/job ID. Use get_pipeline_details to list job IDs."
    if status == 429:
        return "Rate limited. Wait before retrying."
    return _HINTS.get(result.get("error_kind", ""))


def _ok(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _render(result: OperationResult) -> str:
    payload = result.to_dict()
    if not result.success:
        hint = _hint(payload)
        if hint:
            payload["hint"] = hint
        payload["server_cwd"] = os.getcwd()
    return _ok(payload)


def _err(error: Exception) -> str:
    return _render(OperationResult.fail(error, kind="InvalidArgument"))


def _project_path(value: str | None) -> str:
    if value is None or not str(value).strip():
        msg = (
            "Parameter project_path is required: pass the full path of the project "
            "directory the agent is working in"
        )
        raise ValueError(msg)
    return str(Path(value.strip()).expanduser().resolve())


def _as_id(name: str, value: int | str | None, *, required: bool = True) -> int | None:
    """Parse a numeric ID; pipeline and job web URLs are accepted too."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValueError(f"Parameter {name} is required")
        return None
    if isinstance(value, str):
        parse_ref = _parse_pipeline_ref if name == "pipeline_id" else _parse_job_ref
        value = parse_ref(value)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Parameter {name} must be a numeric ID, got {value!r}") from e


def _tail(text: str | None, tail_lines: int) -> tuple[str, int, int]:
    """Return (text, total_lines, shown_lines) keeping only the last *tail_lines* lines."""
    lines = (text or "").splitlines()
    total = len(lines)
    if tail_lines and total > tail_lines:
        lines = lines[-tail_lines:]
    return "\n".join(lines), total, len(lines)


# ════════════════════════════════════════════════════════════════════
# Repository
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"gitlab", "repository", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": False},
)
async def get_repo_url(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
) -> str:
    """Get the GitLab remote URL and project of the Git repository at project_path."""
    try:
        path = _project_path(project_path)
    except ValueError as e:
        return _err(e)
    return _render(await pipelines.get_repo_url(path, config=_get_config(ctx)))


# ════════════════════════════════════════════════════════════════════
# Pipelines
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"gitlab", "pipelines", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_latest_pipeline(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
) -> str:
    """Get the most recently updated GitLab pipeline of the repository."""
    try:
        path = _project_path(project_path)
    except ValueError as e:
        return _err(e)
    return _render(await pipelines.get_latest_pipeline(path, config=_get_config(ctx)))


@mcp.tool(
    tags={"gitlab", "pipelines", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_pipeline_details(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    pipeline_id: Annotated[
        int | str | None,
        Field(description="Pipeline ID. Defaults to the most recently updated pipeline"),
    ] = None,
) -> str:
    """Get a pipeline with all its jobs, each job's log (trace), and its artifacts.

    Use this to diagnose failing pipelines. Job logs are truncated to their last lines.
    """
    try:
        path = _project_path(project_path)
        pid = _as_id("pipeline_id", pipeline_id, required=False)
    except ValueError as e:
        return _err(e)
    config = _get_config(ctx)
    result = await pipelines.get_pipeline_details(path, pid, config=config)
    payload = result.to_dict()
    if result.success and payload["data"]:
        for job in payload["data"]["jobs"]:
            job["trace"], job["trace_total_lines"], _ = _tail(
                job.get("trace"), config.trace_tail_lines
            )
        return _ok(payload)
    return _render(result)


# ════════════════════════════════════════════════════════════════════
# Jobs
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"gitlab", "jobs", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_job_details(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    job_id: Annotated[
        int | str | None, Field(description="Job ID (see get_pipeline_details)")
    ] = None,
) -> str:
    """Get details of a single GitLab job."""
    try:
        path = _project_path(project_path)
        jid = _as_id("job_id", job_id)
    except ValueError as e:
        return _err(e)
    return _render(await pipelines.get_job_details(path, jid, config=_get_config(ctx)))


@mcp.tool(
    tags={"gitlab", "jobs", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_job_logs(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    job_id: Annotated[
        int | str | None, Field(description="Job ID (see get_pipeline_details)")
    ] = None,
    tail_lines: Annotated[
        int | None,
        Field(description="Number of lines from the end to return (0 for all)", ge=0),
    ] = None,
) -> str:
    """Get the log (trace) output of a job. Useful for diagnosing failed jobs."""
    try:
        path = _project_path(project_path)
        jid = _as_id("job_id", job_id)
    except ValueError as e:
        return _err(e)
    config = _get_config(ctx)
    result = await pipelines.get_job_logs(path, jid, config=config)
    if not result.success:
        return _render(result)
    payload = result.to_dict()
    limit = config.trace_tail_lines if tail_lines is None else tail_lines
    logs, total, shown = _tail(payload["data"]["logs"], limit)
    payload["data"].update({"logs": logs, "total_lines": total, "shown_lines": shown})
    return _ok(payload)


@mcp.tool(
    tags={"gitlab", "jobs", "artifacts", "read"},
    annotations={"readOnlyHint": True, "idempotentHint": True, "openWorldHint": True},
)
async def get_job_artifacts(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    job_id: Annotated[
        int | str | None, Field(description="Job ID (see get_pipeline_details)")
    ] = None,
) -> str:
    """Get artifact metadata (file names, types, sizes) of a job."""
    try:
        path = _project_path(project_path)
        jid = _as_id("job_id", job_id)
    except ValueError as e:
        return _err(e)
    return _render(await pipelines.get_job_artifacts(path, jid, config=_get_config(ctx)))


# ════════════════════════════════════════════════════════════════════
# Artifact downloads
# ════════════════════════════════════════════════════════════════════


@mcp.tool(
    tags={"gitlab", "artifacts", "download"},
    annotations={"readOnlyHint": False, "idempotentHint": True, "openWorldHint": True},
)
async def download_job_artifacts(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    job_id: Annotated[
        int | str | None, Field(description="Job ID (see get_pipeline_details)")
    ] = None,
    download_path: Annotated[
        str | None,
        Field(description="Target directory. Defaults to artifacts/job_<ID> in the repository"),
    ] = None,
) -> str:
    """Download the artifacts ZIP archive of a job for local inspection."""
    try:
        path = _project_path(project_path)
        jid = _as_id("job_id", job_id)
    except ValueError as e:
        return _err(e)
    return _render(
        await downloads.download_job_artifacts(path, jid, download_path, config=_get_config(ctx))
    )


@mcp.tool(
    tags={"gitlab", "artifacts", "download"},
    annotations={"readOnlyHint": False, "idempotentHint": True, "openWorldHint": True},
)
async def download_pipeline_artifacts(
    ctx: Context,
    project_path: Annotated[str | None, Field(description=_PROJECT_PATH_DESC)] = None,
    pipeline_id: Annotated[
        int | str | None,
        Field(description="Pipeline ID. Defaults to the most recently updated pipeline"),
    ] = None,
    download_path: Annotated[
        str | None,
        Field(
            description="Target directory. Defaults to artifacts/pipeline_<ID> in the repository"
        ),
    ] = None,
) -> str:
    """Download the artifacts ZIP archives of every job in a pipeline, one job at a time."""
    try:
        path = _project_path(project_path)
        pid = _as_id("pipeline_id", pipeline_id, required=False)
    except ValueError as e:
        return _err(e)
    result = await downloads.download_pipeline_artifacts(
        path, pid, download_path, config=_get_config(ctx)
    )
    return _render(result)
