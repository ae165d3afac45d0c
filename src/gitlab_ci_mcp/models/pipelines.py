"""Pipeline, job, and artifact models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import field_validator

from .base import CIRecord
from .common import ProjectIdentity, User


class CIStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    RUNNING = "running"
    PENDING = "pending"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> CIStatus:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class Pipeline(CIRecord):
    id: int
    iid: int = 0
    status: CIStatus = CIStatus.UNKNOWN
    ref: str = ""
    sha: str = ""
    before_sha: str | None = None
    web_url: str = ""
    created_at: str = ""
    updated_at: str = ""
    started_at: str | None = None
    finished_at: str | None = None
    duration: float | None = None
    queued_duration: float | None = None
    coverage: float | None = None
    source: str = ""
    tag: bool = False
    user: User | None = None
    yaml_errors: str | None = None
    project: ProjectIdentity | None = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, value: Any) -> CIStatus:
        return CIStatus.coerce(value)


class ArtifactsFile(CIRecord):
    filename: str = ""
    size: int = 0


class Artifact(CIRecord):
    filename: str = ""
    size: int = 0
    file_type: str = ""
    file_format: str | None = None
    created_at: str | None = None
    download_path: str | None = None


class Job(CIRecord):
    id: int
    name: str = ""
    stage: str = ""
    status: CIStatus = CIStatus.UNKNOWN
    ref: str = ""
    created_at: str = ""
    started_at: str | None = None
    finished_at: str | None = None
    duration: float | None = None
    queued_duration: float | None = None
    web_url: str = ""
    tag_list: list[str] = []
    artifacts_file: ArtifactsFile | None = None
    artifacts: list[Artifact] = []
    coverage: float | None = None
    allow_failure: bool = False
    failure_reason: str | None = None
    user: User | None = None
    trace: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, value: Any) -> CIStatus:
        return CIStatus.coerce(value)

    @property
    def has_artifacts(self) -> bool:
        return self.artifacts_file is not None and bool(self.artifacts_file.filename)
