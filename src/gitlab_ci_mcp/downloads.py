"""Download job and pipeline artifact archives onto local storage."""

from __future__ import annotations

import re
from pathlib import Path

from .client import GitLabCIClient
from .concurrency import Settled, map_sequential
from .config import GitLabCIConfig
from .exceptions import GitLabApiError
from .log import get_logger
from .models.pipelines import Job
from .models.results import DownloadOutcome, JobDownload, OperationResult, PipelineDownload
from .pipelines import NO_PIPELINES, failure, resolve_pipeline_id
from .repository import resolve_project

logger = get_logger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9]")


def job_archive_name(job_id: int) -> str:
    return f"artifacts_job_{job_id}.zip"


def pipeline_archive_name(job: Job) -> str:
    return f"artifacts_job_{job.id}_{_UNSAFE_NAME_RE.sub('_', job.name)}.zip"


def _target_dir(repository_path: Path, download_path: str | None, default: Path) -> Path:
    """Resolve the directory to write into; relative paths are taken from the repository root."""
    if not download_path:
        return repository_path / default
    path = Path(download_path).expanduser()
    return path if path.is_absolute() else repository_path / path


def _describe(error: Exception | None) -> str:
    if isinstance(error, GitLabApiError):
        return f"HTTP {error.status_code}"
    return str(error)


def _outcome(result: Settled[Job, tuple[str, int]]) -> DownloadOutcome:
    job = result.item
    if not result.ok:
        logger.warning("artifact_download_failed", job_id=job.id, error=str(result.error))
        return DownloadOutcome(
            job_id=job.id, job_name=job.name, success=False, error=_describe(result.error)
        )
    file_name, size = result.value
    return DownloadOutcome(
        job_id=job.id, job_name=job.name, file_name=file_name, size=size, success=True
    )


async def download_job_artifacts(
    project_path: str,
    job_id: int,
    download_path: str | None = None,
    *,
    config: GitLabCIConfig,
) -> OperationResult:
    """Download the artifact archive of one job.

    A job without an artifacts file is a successful call with no files.
    """
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            job = await client.get_job(job_id)
            if not job.has_artifacts:
                return OperationResult[JobDownload].ok(
                    "Job has no artifacts to download", JobDownload(job=job)
                )

            target = _target_dir(
                resolved.repository_path,
                download_path,
                Path(config.artifacts_dir) / f"job_{job_id}",
            )
            target.mkdir(parents=True, exist_ok=True)
            archive = await client.download_job_artifacts(job_id)
    except Exception as e:
        return failure("download_job_artifacts", e)

    name = job_archive_name(job_id)
    archive_path = target / name
    try:
        archive_path.write_bytes(archive)
    except OSError as e:
        return failure("download_job_artifacts", e)

    logger.info(
        "job_artifacts_downloaded", job_id=job_id, path=str(archive_path), size=len(archive)
    )
    return OperationResult[JobDownload].ok(
        "Job artifacts downloaded",
        JobDownload(
            job=job,
            downloaded_files=[name],
            download_path=str(target),
            archive_path=str(archive_path),
            archive_size=len(archive),
        ),
    )


async def download_pipeline_artifacts(
    project_path: str,
    pipeline_id: int | None = None,
    download_path: str | None = None,
    *,
    config: GitLabCIConfig,
) -> OperationResult:
    """Download the artifact archive of every job in a pipeline that has one.

    Jobs are downloaded one at a time so a single archive is held in memory and
    no two writes hit the target directory together. Each job gets a
    ``DownloadOutcome``; a failed job does not stop the ones after it.
    """
    try:
        resolved = resolve_project(project_path, config)
        async with GitLabCIClient(config, resolved.identity) as client:
            target_id = await resolve_pipeline_id(client, pipeline_id)
            if target_id is None:
                return OperationResult[PipelineDownload].ok(NO_PIPELINES)

            jobs = await client.list_pipeline_jobs(target_id)
            with_artifacts = [job for job in jobs if job.has_artifacts]
            if not with_artifacts:
                return OperationResult[PipelineDownload].ok(
                    "Pipeline has no jobs with artifacts",
                    PipelineDownload(pipeline_id=target_id),
                )

            target = _target_dir(
                resolved.repository_path,
                download_path,
                Path(config.artifacts_dir) / f"pipeline_{target_id}",
            )
            target.mkdir(parents=True, exist_ok=True)

            async def fetch(job: Job) -> tuple[str, int]:
                archive = await client.download_job_artifacts(job.id)
                name = pipeline_archive_name(job)
                (target / name).write_bytes(archive)
                return name, len(archive)

            results = await map_sequential(with_artifacts, fetch)
    except Exception as e:
        return failure("download_pipeline_artifacts", e)

    summary = PipelineDownload(
        pipeline_id=target_id,
        download_path=str(target),
        jobs_with_artifacts=[job.id for job in with_artifacts],
        outcomes=[_outcome(r) for r in results],
    )
    logger.info(
        "pipeline_artifacts_downloaded",
        pipeline_id=target_id,
        succeeded=summary.succeeded,
        failed=summary.failed,
    )
    message = (
        f"Pipeline artifacts downloaded. Succeeded: {summary.succeeded}, "
        f"failed: {summary.failed}"
    )
    if summary.partial_failure:
        message = f"Partial failure. {message}"
    return OperationResult[PipelineDownload].ok(message, summary)
