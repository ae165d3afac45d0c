"""Shared test fixtures for gitlab-ci-mcp."""

from __future__ import annotations

from pathlib import Path

import pytest
import respx

from gitlab_ci_mcp import repository
from gitlab_ci_mcp.config import GitLabCIConfig

TEST_HOST = "gitlab.example.com"
TEST_TOKEN = "test-token"
REMOTE_URL = "git@gitlab.example.com:my-group/my-project.git"
BASE = f"https://{TEST_HOST}/api/v4"


@pytest.fixture
def config() -> GitLabCIConfig:
    return GitLabCIConfig(token=TEST_TOKEN)


@pytest.fixture
def remote_url() -> str:
    return REMOTE_URL


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, remote_url: str) -> Path:
    """A directory tree with a .git marker whose origin remote points at TEST_HOST."""
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    (root / "src" / "pkg").mkdir(parents=True)

    def fake_read_remote_url(repo_root, remote="origin", timeout=10):
        return remote_url

    monkeypatch.setattr(repository, "read_remote_url", fake_read_remote_url)
    return root


@pytest.fixture
def mock_api() -> respx.MockRouter:
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        yield router
