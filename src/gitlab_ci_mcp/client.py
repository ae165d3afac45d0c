"""GitLab CI API client using httpx."""

from __future__ import annotations

import json
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .config import GitLabCIConfig
from .exceptions import (
    GitLabApiError,
    GitLabAuthError,
    GitLabNotFoundError,
    GitLabResponseShapeError,
    TransportError,
)
from .models.common import ProjectIdentity
from .models.pipelines import Artifact, Job, Pipeline

T = TypeVar("T")

_PIPELINE = TypeAdapter(Pipeline)
_PIPELINES = TypeAdapter(list[Pipeline])
_JOB = TypeAdapter(Job)
_JOBS = TypeAdapter(list[Job])
_ARTIFACTS = TypeAdapter(list[Artifact])


class GitLabCIClient:
    """Async HTTP client for the CI endpoints of one GitLab project (REST API v4)."""

    def __init__(self, config: GitLabCIConfig, project: ProjectIdentity) -> None:
        config.validate()
        self.config = config
        self.project = project
        self._client = httpx.AsyncClient(
            base_url=project.api_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
            },
            timeout=config.timeout,
            verify=config.ssl_verify,
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitLabCIClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── HTTP helpers ──────────────────────────────────────────────

    @property
    def _project_path(self) -> str:
        return f"/projects/{self.project.encoded_path_id}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        raw: bool = False,
        binary: bool = False,
    ) -> Any:
        """Make an API request and return parsed JSON, text (raw) or bytes (binary)."""
        try:
            resp = await self._client.request(method, path, params=params)
        except httpx.TransportError as e:
            raise TransportError(e) from e

        if resp.status_code in (401, 403):
            raise GitLabAuthError(resp.status_code, resp.text)
        if resp.status_code == 404:
            raise GitLabNotFoundError(resp.text)
        if not resp.is_success:
            raise GitLabApiError(resp.status_code, resp.reason_phrase or "", resp.text)

        if binary:
            return resp.content
        if raw:
            return resp.text
        if resp.status_code == 204 or not resp.content:
            return None

        content_type = resp.headers.get("content-type", "")
        if "text/html" in content_type:
            msg = "Unexpected HTML response: check host and authentication"
            raise GitLabApiError(resp.status_code, msg, resp.text[:500])

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise GitLabApiError(
                resp.status_code,
                f"JSON parse error: {e}",
                resp.text[:500],
            ) from e

    async def get(
        self, path: str, params: dict[str, Any] | None = None, *, raw: bool = False
    ) -> Any:
        return await self._request("GET", path, params=params, raw=raw)

    @staticmethod
    def _validate(adapter: TypeAdapter[T], data: Any, path: str) -> T:
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise GitLabResponseShapeError(
                200, f"{path}: {e.error_count()} invalid field(s)", str(e)[:500]
            ) from e

    # ── Pipelines ─────────────────────────────────────────────────

    async def list_pipelines(self, params: dict[str, Any] | None = None) -> list[Pipeline]:
        path = f"{self._project_path}/pipelines"
        p = {"per_page": 20, **(params or {})}
        return self._validate(_PIPELINES, await self.get(path, params=p) or [], path)

    async def get_latest_pipeline(self) -> Pipeline | None:
        """Return the most recently updated pipeline, or None if the project has none."""
        pipelines = await self.list_pipelines(
            {"per_page": 1, "order_by": "updated_at", "sort": "desc"}
        )
        return pipelines[0] if pipelines else None

    async def get_pipeline(self, pipeline_id: int) -> Pipeline:
        path = f"{self._project_path}/pipelines/{pipeline_id}"
        return self._validate(_PIPELINE, await self.get(path), path)

    async def list_pipeline_jobs(self, pipeline_id: int) -> list[Job]:
        path = f"{self._project_path}/pipelines/{pipeline_id}/jobs"
        data = await self.get(path, params={"per_page": 100})
        return self._validate(_JOBS, data or [], path)

    async def list_pipeline_artifacts(self, pipeline_id: int) -> list[Artifact]:
        path = f"{self._project_path}/pipelines/{pipeline_id}/artifacts"
        return self._validate(_ARTIFACTS, await self.get(path) or [], path)

    # ── Jobs ──────────────────────────────────────────────────────

    async def get_job(self, job_id: int) -> Job:
        path = f"{self._project_path}/jobs/{job_id}"
        return self._validate(_JOB, await self.get(path), path)

    async def get_job_trace(self, job_id: int) -> str:
        return await self.get(f"{self._project_path}/jobs/{job_id}/trace", raw=True)

    async def download_job_artifacts(self, job_id: int) -> bytes:
        """Fetch the job's artifact archive, fully buffered in memory."""
        return await self._request(
            "GET", f"{self._project_path}/jobs/{job_id}/artifacts", binary=True
        )
