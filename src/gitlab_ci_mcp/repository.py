"""Locate the Git repository for a path and derive its GitLab project identity."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .config import GitLabCIConfig
from .exceptions import (
    MalformedRemoteUrlError,
    NoRemoteConfiguredError,
    NotGitLabHostError,
    RepositoryNotFoundError,
)
from .log import get_logger
from .models.common import ProjectIdentity

logger = get_logger(__name__)

GIT_MARKER = ".git"

_HOST = r"[a-zA-Z0-9.-]+"
_GITLAB_HOST = re.compile(r"^[a-zA-Z0-9.-]*gitlab[a-zA-Z0-9.-]*$", re.IGNORECASE)

# Matches:  https://<host>[:port]/...
_HTTPS_RE = re.compile(rf"^https://({_HOST})(?::\d+)?/")
# Matches:  git@<host>:...
_SCP_RE = re.compile(rf"^git@({_HOST}):")
# Matches:  ssh://git@<host>/...
_SSH_RE = re.compile(rf"^ssh://git@({_HOST})/")


@dataclass(frozen=True)
class ResolvedProject:
    repository_path: Path
    remote_url: str
    identity: ProjectIdentity


# ════════════════════════════════════════════════════════════════════
# Repository location
# ════════════════════════════════════════════════════════════════════


def find_repository_root(start_path: str | Path) -> Path | None:
    """Return the closest directory at or above *start_path* that contains ``.git``.

    ``.git`` may be a directory or a file (worktrees, submodules).
    """
    current = Path(start_path).expanduser().resolve()
    while True:
        if (current / GIT_MARKER).exists():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def locate_repository(start_path: str | Path) -> Path:
    root = find_repository_root(start_path)
    if root is None:
        raise RepositoryNotFoundError(str(start_path))
    return root


# ════════════════════════════════════════════════════════════════════
# Remote URL parsing
# ════════════════════════════════════════════════════════════════════


def read_remote_url(repo_root: str | Path, remote: str = "origin", timeout: int = 10) -> str:
    """Read the configured URL of *remote* with ``git remote get-url``."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", remote],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise NoRemoteConfiguredError(remote, "git is not installed or not in PATH") from e
    except subprocess.TimeoutExpired as e:
        raise NoRemoteConfiguredError(remote, f"git timed out after {timeout}s") from e

    url = result.stdout.strip()
    if result.returncode != 0 or not url:
        raise NoRemoteConfiguredError(remote, result.stderr.strip())
    return url


def _strip_git_suffix(url: str) -> str:
    url = url.strip()
    return url[: -len(".git")] if url.endswith(".git") else url


def _is_gitlab_host(host: str, extra_hosts: Iterable[str]) -> bool:
    return bool(_GITLAB_HOST.match(host)) or host.lower() in {h.lower() for h in extra_hosts}


def is_gitlab_url(url: str | None, extra_hosts: Iterable[str] = ()) -> bool:
    """Check that *url* is an https, scp-style or ssh:// remote on a GitLab host."""
    if not url or not isinstance(url, str):
        return False
    normalized = _strip_git_suffix(url)
    for pattern in (_HTTPS_RE, _SCP_RE, _SSH_RE):
        m = pattern.match(normalized)
        if m:
            return _is_gitlab_host(m.group(1), extra_hosts)
    return False


def _to_https(url: str) -> str:
    if url.startswith("git@"):
        return re.sub(r"^git@([^:]+):", r"https://\1/", url)
    if url.startswith("ssh://git@"):
        return "https://" + url[len("ssh://git@") :]
    return url


def parse_remote_url(url: str, extra_hosts: Iterable[str] = ()) -> ProjectIdentity:
    """Decompose a GitLab remote URL into host, namespace and project name.

    >>> parse_remote_url("git@gitlab.com:group/sub/app.git").namespace
    'group/sub'
    """
    if not is_gitlab_url(url, extra_hosts):
        raise NotGitLabHostError(url)

    parsed = urlparse(_to_https(_strip_git_suffix(url)))
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2 or not parsed.hostname:
        raise MalformedRemoteUrlError(url)

    host = parsed.hostname
    if parsed.port:
        host = f"{host}:{parsed.port}"
    return ProjectIdentity.from_parts(host, "/".join(parts[:-1]), parts[-1])


def resolve_identity(
    repo_root: str | Path, remote: str = "origin", extra_hosts: Iterable[str] = ()
) -> ProjectIdentity:
    return parse_remote_url(read_remote_url(repo_root, remote), extra_hosts)


def resolve_project(project_path: str | Path, config: GitLabCIConfig) -> ResolvedProject:
    """Locate the repository for *project_path* and resolve its GitLab identity."""
    root = locate_repository(project_path)
    url = read_remote_url(root, config.remote_name)
    identity = parse_remote_url(url, config.extra_hosts)
    logger.debug(
        "project_resolved",
        repository_path=str(root),
        host=identity.host,
        project=identity.path_with_namespace,
    )
    return ResolvedProject(repository_path=root, remote_url=url, identity=identity)
