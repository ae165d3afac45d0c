"""Read operations: repository identity, pipelines and single jobs.

Every operation resolves the project from a filesystem path, talks to the
backend with a fresh client and returns an ``OperationResult``. Errors never
escape an operation; they are turned into a failed envelope here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .client import GitLabCIClient
from .concurrency import Settled, gather_settled
from .config import GitLabCIConfig
from .exceptions import GitLabCIError
from .log import get_logger
from .models.pipelines import Job, Pipeline
from .models.results import (
    JobArtifacts,
    JobDetails,
    JobLogs,
    OperationResult,
    PipelineDetails,
    RepositoryInfo,
)
from .repository import resolve_project

logger = get_logger(__name__)

T = TypeVar("T")

NO_PIPELINES = "No pipelines found"
TRACE_ERROR_PREFIX = "Failed to fetch job log"


def failure(operation: str, error: Exception) -> OperationResult:
    """Log *error* and wrap it in a failed envelope."""
    if isinstance(error, GitLabCIError):
        logger.warning(
            "operation_failed", operation=operation, kind=error.kind, error=str(error)
        )
    else:
        logger.exception("operation_crashed", operation=operation)
    return OperationResult.fail(error)


async def resolve_pipeline_id(client: GitLabCIClient, pipeline_id: int | None) -> int | None:
    """Return *pipeline_id*, or the most recently updated pipeline's id when omitted.

    None means the project has no pipelines at all.
    """
    if pipeline_id is not None:
        return pipeline_id
    latest = await client.get_latest_pipeline()
    if latest is None:
        return None
    logger.debug("latest_pipeline_resolved", pipeline_id=latest.id)
    return latest.id


async def _or_empty(fetch: Awaitable[list[T]], listing: str, pipeline_id: int) -> list[T]:
    try:
        return await fetch
    except GitLabCIError as e:
        logger.warning(
            "pipeline_listing_failed", listing=listing, pipeline_id=pipeline_id, error=str(e)
        )
        return []


def _attach_trace(result: Settled[Job, str]) -> Job:
    if result.ok:
        return result.item.model_copy(update={"trace": result.value or ""})
    logger.warning("job_trace_failed", job_id=result.item.id, error=str(result.error))
    return result.item.model_copy(update={"trace": f"{TRACE_ERROR_PREFIX}: {result.error}"})


# ════════════════════════════════════════════════════════════════════
# Repository
# ════════════════════════════════════════════════════════════════════


async def get_repo_url(project_path: str, *, config: GitLabCIConfig) -> OperationResult:
    """Find the repository for *project_path* and report its GitLab remote."""
    try:
        resolved = resolve_project(project_path, config)
    except Exception as e:
        return failure("get_repo_url", e)
    info = RepositoryInfo(
        remote_url=resolved.remote_url,
        repository_path=str(resolved.repository_path),
        project_path=project_path,
        project=resolved.identity,
    )
    return OperationResult[RepositoryInfo].ok("GitLab repository found", info)


# ════════════════════════════════════════════════════════════════════
# Pipelines
# ════════════════════════════════════════════════════════════════════


async def get_latest_pipeline(project_path: str, *, config: GitLabCIConfig) -> OperationResult:
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            latest = await client.get_latest_pipeline()
    except Exception as e:
        return failure("get_latest_pipeline", e)

    if latest is None:
        return OperationResult[Pipeline].ok(NO_PIPELINES)
    pipeline = latest.model_copy(update={"project": resolved.identity})
    return OperationResult[Pipeline].ok("Latest pipeline retrieved", pipeline)


async def get_pipeline_details(
    project_path: str, pipeline_id: int | None = None, *, config: GitLabCIConfig
) -> OperationResult:
    """Assemble a pipeline with its jobs, each job's trace, and the pipeline artifacts.

    The job and artifact listings fall back to empty lists when they fail, and
    a failed trace fetch only replaces that job's trace with a diagnostic. Only
    resolution, credential and pipeline fetch errors fail the whole call.
    """
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            target_id = await resolve_pipeline_id(client, pipeline_id)
            if target_id is None:
                return OperationResult[PipelineDetails].ok(NO_PIPELINES)

            pipeline = await client.get_pipeline(target_id)
            jobs, artifacts = await asyncio.gather(
                _or_empty(client.list_pipeline_jobs(target_id), "jobs", target_id),
                _or_empty(client.list_pipeline_artifacts(target_id), "artifacts", target_id),
            )
            traces = await gather_settled(jobs, lambda job: client.get_job_trace(job.id))
    except Exception as e:
        return failure("get_pipeline_details", e)

    details = PipelineDetails(
        pipeline=pipeline.model_copy(update={"project": resolved.identity}),
        jobs=[_attach_trace(t) for t in traces],
        artifacts=artifacts,
    )
    logger.info(
        "pipeline_details_assembled",
        pipeline_id=target_id,
        jobs=len(details.jobs),
        artifacts=len(details.artifacts),
    )
    return OperationResult[PipelineDetails].ok("Pipeline details retrieved", details)


# ════════════════════════════════════════════════════════════════════
# Jobs
# ════════════════════════════════════════════════════════════════════


async def get_job_details(
    project_path: str, job_id: int, *, config: GitLabCIConfig
) -> OperationResult:
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            job = await client.get_job(job_id)
    except Exception as e:
        return failure("get_job_details", e)
    return OperationResult[JobDetails].ok(
        "Job details retrieved", JobDetails(job=job, project=resolved.identity)
    )


async def get_job_logs(
    project_path: str, job_id: int, *, config: GitLabCIConfig
) -> OperationResult:
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            job = await client.get_job(job_id)
            trace = await client.get_job_trace(job_id)
    except Exception as e:
        return failure("get_job_logs", e)
    return OperationResult[JobLogs].ok(
        "Job logs retrieved", JobLogs(job=job, logs=trace or "", project=resolved.identity)
    )


async def get_job_artifacts(
    project_path: str, job_id: int, *, config: GitLabCIConfig
) -> OperationResult:
    """Report the artifact metadata the backend attaches to the job resource.

    A job without artifacts yields an empty list; a failed job fetch fails the
    operation, so the two cases stay distinguishable.
    """
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            job = await client.get_job(job_id)
    except Exception as e:
        return failure("get_job_artifacts", e)
    return OperationResult[JobArtifacts].ok(
        "Job artifacts retrieved",
        JobArtifacts(job=job, artifacts=job.artifacts, project=resolved.identity),
    )
