"""Operation envelopes and payloads returned by the tool-facing operations."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import computed_field

from .base import CIRecord
from .common import ProjectIdentity
from .pipelines import Artifact, Job, Pipeline

T = TypeVar("T")


class OperationResult(CIRecord, Generic[T]):
    """Envelope for every public operation.

    ``success=False`` always carries ``data=None``. ``success=True`` with
    ``data=None`` means the backend legitimately had nothing to return
    (no pipelines yet), which callers must not confuse with a failure.
    """

    success: bool
    message: str = ""
    data: T | None = None
    error_kind: str | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, message: str, data: Any = None) -> OperationResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: Exception | str, kind: str | None = None) -> OperationResult:
        status_code = None
        if isinstance(error, Exception):
            kind = kind or getattr(error, "kind", "Error")
            status_code = getattr(error, "status_code", None)
        return cls(
            success=False,
            message=str(error),
            data=None,
            error_kind=kind,
            status_code=status_code,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        for key in ("error_kind", "status_code"):
            if data[key] is None:
                del data[key]
        return data


class RepositoryInfo(CIRecord):
    remote_url: str
    repository_path: str
    project_path: str
    project: ProjectIdentity


class PipelineDetails(CIRecord):
    pipeline: Pipeline
    jobs: list[Job] = []
    artifacts: list[Artifact] = []


class JobDetails(CIRecord):
    job: Job
    project: ProjectIdentity


class JobLogs(CIRecord):
    job: Job
    logs: str = ""
    project: ProjectIdentity


class JobArtifacts(CIRecord):
    job: Job
    artifacts: list[Artifact] = []
    project: ProjectIdentity


class JobDownload(CIRecord):
    job: Job
    downloaded_files: list[str] = []
    download_path: str | None = None
    archive_path: str | None = None
    archive_size: int = 0


class DownloadOutcome(CIRecord):
    job_id: int
    job_name: str = ""
    file_name: str | None = None
    size: int = 0
    success: bool
    error: str | None = None


class PipelineDownload(CIRecord):
    pipeline_id: int
    download_path: str | None = None
    jobs_with_artifacts: list[int] = []
    outcomes: list[DownloadOutcome] = []

    @computed_field
    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @computed_field
    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @computed_field
    @property
    def partial_failure(self) -> bool:
        return self.failed > 0

    @property
    def downloaded_files(self) -> list[str]:
        return [o.file_name for o in self.outcomes if o.success and o.file_name]
