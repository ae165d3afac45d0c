"""GitLab CI MCP server configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import MissingCredentialError


@dataclass
class GitLabCIConfig:
    """Configuration for the GitLab CI MCP server, loaded from environment variables.

    The GitLab host is not configured here: it is derived per call from the
    remote URL of the repository being inspected.
    """

    token: str = ""
    timeout: int = 30
    ssl_verify: bool = True
    remote_name: str = "origin"
    extra_hosts: tuple[str, ...] = ()
    artifacts_dir: str = "artifacts"
    trace_tail_lines: int = 200

    @classmethod
    def from_env(cls) -> GitLabCIConfig:
        token = (
            os.getenv("GITLAB_TOKEN")
            or os.getenv("GITLAB_PAT")
            or os.getenv("GITLAB_PERSONAL_ACCESS_TOKEN")
            or os.getenv("GITLAB_API_TOKEN", "")
        )
        timeout = int(os.getenv("GITLAB_TIMEOUT", "30"))
        ssl_verify = os.getenv("GITLAB_SSL_VERIFY", "true").lower() not in (
            "false",
            "0",
            "no",
        )
        extra_hosts = tuple(
            h.strip().lower() for h in os.getenv("GITLAB_HOSTS", "").split(",") if h.strip()
        )

        return cls(
            token=token,
            timeout=timeout,
            ssl_verify=ssl_verify,
            remote_name=os.getenv("GITLAB_REMOTE", "origin") or "origin",
            extra_hosts=extra_hosts,
            artifacts_dir=os.getenv("GITLAB_ARTIFACTS_DIR", "artifacts") or "artifacts",
            trace_tail_lines=int(os.getenv("GITLAB_TRACE_TAIL_LINES", "200")),
        )

    def validate(self) -> None:
        if not self.token:
            raise MissingCredentialError
