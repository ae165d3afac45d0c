"""GitLab CI exceptions."""

from __future__ import annotations


class GitLabCIError(Exception):
    """Base exception for GitLab CI operations."""

    kind = "Error"


class RepositoryNotFoundError(GitLabCIError):
    """Raised when no Git repository is found at or above a path."""

    kind = "NotFound"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Git repository not found at or above: {path}")


class NoRemoteConfiguredError(GitLabCIError):
    """Raised when the repository has no URL for the requested remote."""

    kind = "NoRemoteConfigured"

    def __init__(self, remote: str, detail: str = "") -> None:
        self.remote = remote
        self.detail = detail
        msg = f"Remote '{remote}' is not configured"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class NotGitLabHostError(GitLabCIError):
    """Raised when a remote URL does not point at a GitLab host."""

    kind = "NotATargetHost"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Not a GitLab repository: {url}")


class MalformedRemoteUrlError(GitLabCIError):
    """Raised when a GitLab remote URL has no namespace/project path."""

    kind = "MalformedRemoteUrl"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Could not parse GitLab project from remote URL: {url}")


class MissingCredentialError(GitLabCIError):
    """Raised before any request when no GitLab token is configured."""

    kind = "MissingCredential"

    def __init__(self) -> None:
        super().__init__(
            "GitLab token is required. Set one of: GITLAB_TOKEN, GITLAB_PAT, "
            "GITLAB_PERSONAL_ACCESS_TOKEN, or GITLAB_API_TOKEN"
        )


class GitLabApiError(GitLabCIError):
    """Raised when the GitLab API returns a non-success response."""

    kind = "UpstreamApiError"

    def __init__(self, status_code: int, status_text: str, body: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        super().__init__(f"GitLab API Error {status_code} {status_text}: {body}")


class GitLabAuthError(GitLabApiError):
    """Raised on 401/403 authentication failures."""

    def __init__(self, status_code: int, body: str = "") -> None:
        status_text = "Unauthorized" if status_code == 401 else "Forbidden"
        super().__init__(status_code, status_text, body)


class GitLabNotFoundError(GitLabApiError):
    """Raised on 404 responses."""

    def __init__(self, body: str = "") -> None:
        super().__init__(404, "Not Found", body)


class GitLabResponseShapeError(GitLabApiError):
    """Raised when a successful response does not match the expected record shape."""

    def __init__(self, status_code: int, detail: str, body: str = "") -> None:
        super().__init__(status_code, f"Unexpected response shape: {detail}", body)


class TransportError(GitLabCIError):
    """Raised when the request never got an HTTP response (DNS, connect, timeout)."""

    kind = "TransportError"

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Could not reach GitLab: {cause!r}")
