"""Tool-level tests: call @mcp.tool functions via FastMCP Client with mocked API."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from fastmcp import Client, FastMCP
from httpx import Response

from gitlab_ci_mcp.config import GitLabCIConfig

TEST_TOKEN = "test-token"
PROJECT = "/projects/my-group%2Fmy-project"

TOKEN_VARS = ("GITLAB_TOKEN", "GITLAB_PAT", "GITLAB_PERSONAL_ACCESS_TOKEN", "GITLAB_API_TOKEN")

TOOL_NAMES = {
    "get_repo_url",
    "get_latest_pipeline",
    "get_pipeline_details",
    "get_job_details",
    "get_job_logs",
    "get_job_artifacts",
    "download_job_artifacts",
    "download_pipeline_artifacts",
}


def _make_mcp(config: GitLabCIConfig) -> tuple[FastMCP, Any]:
    """Return the real mcp instance with its lifespan swapped for a fixed config."""

    @asynccontextmanager
    async def mock_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        yield {"config": config}

    from gitlab_ci_mcp.servers.gitlab import mcp

    original_lifespan = mcp._lifespan
    mcp._lifespan = mock_lifespan
    return mcp, original_lifespan


@pytest.fixture
async def tool_client(mock_api, monkeypatch):
    """FastMCP test client with a token configured and respx-mocked HTTP."""
    monkeypatch.setenv("GITLAB_TOKEN", TEST_TOKEN)
    monkeypatch.setenv("GITLAB_TRACE_TAIL_LINES", "2")
    mcp, original_lifespan = _make_mcp(GitLabCIConfig(token=TEST_TOKEN, trace_tail_lines=2))
    async with Client(mcp) as client:
        yield client, mock_api
    mcp._lifespan = original_lifespan


@pytest.fixture
async def tokenless_client(mock_api, monkeypatch):
    for var in TOKEN_VARS:
        monkeypatch.delenv(var, raising=False)
    mcp, original_lifespan = _make_mcp(GitLabCIConfig())
    async with Client(mcp) as client:
        yield client, mock_api
    mcp._lifespan = original_lifespan


def _parse(result: Any) -> dict | list:
    """Extract JSON from a tool call result."""
    if hasattr(result, "content"):
        for item in result.content:
            if hasattr(item, "text"):
                return json.loads(item.text)
    if hasattr(result, "__iter__") and not isinstance(result, (str, dict)):
        for item in result:
            if hasattr(item, "text"):
                return json.loads(item.text)
    return json.loads(str(result))


# ═══════════════════════════════════════════════════════
# Registration and argument validation
# ═══════════════════════════════════════════════════════


class TestRegistration:
    async def test_all_tools_listed(self, tool_client):
        client, _ = tool_client
        tools = await client.list_tools()
        assert TOOL_NAMES <= {t.name for t in tools}


class TestArguments:
    @pytest.mark.parametrize("tool", sorted(TOOL_NAMES))
    async def test_missing_project_path(self, tool_client, tool):
        client, router = tool_client
        parsed = _parse(await client.call_tool(tool, {}))
        assert parsed["success"] is False
        assert parsed["error_kind"] == "InvalidArgument"
        assert "project_path" in parsed["message"]
        assert "server_cwd" in parsed
        assert len(router.calls) == 0

    async def test_missing_job_id(self, tool_client, repo):
        client, _ = tool_client
        parsed = _parse(await client.call_tool("get_job_details", {"project_path": str(repo)}))
        assert parsed["success"] is False
        assert "job_id" in parsed["message"]
        assert parsed["hint"].startswith("Check the tool arguments")

    async def test_non_numeric_job_id(self, tool_client, repo):
        client, _ = tool_client
        parsed = _parse(
            await client.call_tool("get_job_logs", {"project_path": str(repo), "job_id": "abc"})
        )
        assert parsed["success"] is False
        assert "numeric" in parsed["message"]


# ═══════════════════════════════════════════════════════
# Repository and pipelines
# ═══════════════════════════════════════════════════════


class TestRepoUrl:
    async def test_happy_path(self, tool_client, repo):
        client, _ = tool_client
        parsed = _parse(await client.call_tool("get_repo_url", {"project_path": str(repo)}))
        assert parsed["success"] is True
        assert parsed["data"]["project"]["encoded_path_id"] == "my-group%2Fmy-project"

    async def test_not_a_repository(self, tool_client, tmp_path):
        client, _ = tool_client
        parsed = _parse(await client.call_tool("get_repo_url", {"project_path": str(tmp_path)}))
        assert parsed["success"] is False
        assert parsed["error_kind"] == "NotFound"
        assert "hint" in parsed


class TestPipelines:
    async def test_latest_pipeline_empty(self, tool_client, repo):
        client, router = tool_client
        router.get(f"{PROJECT}/pipelines").mock(return_value=Response(200, json=[]))
        parsed = _parse(
            await client.call_tool("get_latest_pipeline", {"project_path": str(repo)})
        )
        assert parsed == {"success": True, "message": "No pipelines found", "data": None}

    async def test_pipeline_details_from_url_with_truncated_traces(self, tool_client, repo):
        client, router = tool_client
        router.get(f"{PROJECT}/pipelines/100").mock(
            return_value=Response(200, json={"id": 100, "status": "failed"})
        )
        router.get(f"{PROJECT}/pipelines/100/jobs").mock(
            return_value=Response(
                200, json=[{"id": 1, "name": "test", "stage": "test", "status": "failed"}]
            )
        )
        router.get(f"{PROJECT}/pipelines/100/artifacts").mock(return_value=Response(200, json=[]))
        router.get(f"{PROJECT}/jobs/1/trace").mock(
            return_value=Response(200, text="one\ntwo\nthree\n")
        )

        parsed = _parse(
            await client.call_tool(
                "get_pipeline_details",
                {
                    "project_path": str(repo),
                    "pipeline_id": "https://gitlab.example.com/my-group/my-project/-/pipelines/100",
                },
            )
        )

        assert parsed["success"] is True
        job = parsed["data"]["jobs"][0]
        assert job["status"] == "failed"
        assert job["trace"] == "two\nthree"
        assert job["trace_total_lines"] == 3

    async def test_auth_error_hint(self, tool_client, repo):
        client, router = tool_client
        router.get(f"{PROJECT}/pipelines").mock(
            return_value=Response(401, json={"message": "401 Unauthorized"})
        )
        parsed = _parse(
            await client.call_tool("get_latest_pipeline", {"project_path": str(repo)})
        )
        assert parsed["success"] is False
        assert parsed["status_code"] == 401
        assert "GITLAB_TOKEN" in parsed["hint"]

    async def test_missing_credential(self, tokenless_client, repo):
        client, router = tokenless_client
        parsed = _parse(
            await client.call_tool("get_latest_pipeline", {"project_path": str(repo)})
        )
        assert parsed["success"] is False
        assert parsed["error_kind"] == "MissingCredential"
        assert "GITLAB_TOKEN" in parsed["hint"]
        assert len(router.calls) == 0


# ═══════════════════════════════════════════════════════
# Jobs
# ═══════════════════════════════════════════════════════


class TestJobLogs:
    def _mock_job(self, router) -> None:
        router.get(f"{PROJECT}/jobs/5").mock(
            return_value=Response(200, json={"id": 5, "name": "lint", "status": "failed"})
        )
        router.get(f"{PROJECT}/jobs/5/trace").mock(return_value=Response(200, text="a\nb\nc\nd"))

    async def test_tail_lines(self, tool_client, repo):
        client, router = tool_client
        self._mock_job(router)
        parsed = _parse(
            await client.call_tool(
                "get_job_logs", {"project_path": str(repo), "job_id": 5, "tail_lines": 1}
            )
        )
        assert parsed["data"]["logs"] == "d"
        assert parsed["data"]["total_lines"] == 4
        assert parsed["data"]["shown_lines"] == 1

    async def test_zero_returns_everything(self, tool_client, repo):
        client, router = tool_client
        self._mock_job(router)
        parsed = _parse(
            await client.call_tool(
                "get_job_logs", {"project_path": str(repo), "job_id": "5", "tail_lines": 0}
            )
        )
        assert parsed["data"]["logs"] == "a\nb\nc\nd"
        assert parsed["data"]["shown_lines"] == 4

    async def test_job_url_and_default_tail(self, tool_client, repo):
        client, router = tool_client
        self._mock_job(router)
        parsed = _parse(
            await client.call_tool(
                "get_job_logs",
                {
                    "project_path": str(repo),
                    "job_id": "https://gitlab.example.com/my-group/my-project/-/jobs/5",
                },
            )
        )
        assert parsed["data"]["logs"] == "c\nd"

    async def test_job_not_found_hint(self, tool_client, repo):
        client, router = tool_client
        router.get(f"{PROJECT}/jobs/9").mock(return_value=Response(404))
        parsed = _parse(
            await client.call_tool("get_job_details", {"project_path": str(repo), "job_id": 9})
        )
        assert parsed["success"] is False
        assert parsed["hint"].startswith("Verify the pipeline/job ID")


# ═══════════════════════════════════════════════════════
# Downloads
# ═══════════════════════════════════════════════════════


class TestDownloads:
    async def test_download_pipeline_artifacts(self, tool_client, repo):
        client, router = tool_client
        router.get(f"{PROJECT}/pipelines/100/jobs").mock(
            return_value=Response(
                200,
                json=[
                    {"id": 1, "name": "build", "artifacts_file": {"filename": "a.zip"}},
                    {"id": 2, "name": "docs", "artifacts_file": {"filename": "a.zip"}},
                ],
            )
        )
        router.get(f"{PROJECT}/jobs/1/artifacts").mock(return_value=Response(200, content=b"1"))
        router.get(f"{PROJECT}/jobs/2/artifacts").mock(return_value=Response(502))

        parsed = _parse(
            await client.call_tool(
                "download_pipeline_artifacts", {"project_path": str(repo), "pipeline_id": 100}
            )
        )

        assert parsed["success"] is True
        data = parsed["data"]
        assert data["attempted"] == 2
        assert data["failed"] == 1
        assert data["partial_failure"] is True
        assert (repo / "artifacts" / "pipeline_100" / "artifacts_job_1_build.zip").is_file()
