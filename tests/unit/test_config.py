"""Tests for GitLab CI configuration."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from gitlab_ci_mcp.config import GitLabCIConfig
from gitlab_ci_mcp.exceptions import MissingCredentialError

TOKEN_VARS = ("GITLAB_TOKEN", "GITLAB_PAT", "GITLAB_PERSONAL_ACCESS_TOKEN", "GITLAB_API_TOKEN")


def _clean_env(**values: str) -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if not k.startswith("GITLAB_")}
    env.update(values)
    return env


def test_config_defaults():
    with patch.dict(os.environ, _clean_env(), clear=True):
        config = GitLabCIConfig.from_env()
    assert config.token == ""
    assert config.timeout == 30
    assert config.ssl_verify is True
    assert config.remote_name == "origin"
    assert config.extra_hosts == ()
    assert config.artifacts_dir == "artifacts"
    assert config.trace_tail_lines == 200


def test_config_from_env():
    env = _clean_env(
        GITLAB_TOKEN="glpat-abc123",
        GITLAB_TIMEOUT="5",
        GITLAB_SSL_VERIFY="false",
        GITLAB_REMOTE="upstream",
        GITLAB_HOSTS="code.internal.net, Git.Corp.Example ,",
        GITLAB_ARTIFACTS_DIR=".ci-artifacts",
        GITLAB_TRACE_TAIL_LINES="50",
    )
    with patch.dict(os.environ, env, clear=True):
        config = GitLabCIConfig.from_env()
    assert config.token == "glpat-abc123"
    assert config.timeout == 5
    assert config.ssl_verify is False
    assert config.remote_name == "upstream"
    assert config.extra_hosts == ("code.internal.net", "git.corp.example")
    assert config.artifacts_dir == ".ci-artifacts"
    assert config.trace_tail_lines == 50


@pytest.mark.parametrize("var", TOKEN_VARS)
def test_config_token_aliases(var):
    with patch.dict(os.environ, _clean_env(**{var: "glpat-xyz"}), clear=True):
        config = GitLabCIConfig.from_env()
    assert config.token == "glpat-xyz"


def test_config_token_precedence():
    env = _clean_env(GITLAB_TOKEN="primary", GITLAB_API_TOKEN="fallback")
    with patch.dict(os.environ, env, clear=True):
        assert GitLabCIConfig.from_env().token == "primary"


def test_config_validate_missing_token():
    with pytest.raises(MissingCredentialError, match="GITLAB_TOKEN"):
        GitLabCIConfig().validate()


def test_config_validate_ok():
    GitLabCIConfig(token="x").validate()
