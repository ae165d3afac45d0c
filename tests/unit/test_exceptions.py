"""Tests for exceptions."""

import httpx

from gitlab_ci_mcp.exceptions import (
    GitLabApiError,
    GitLabAuthError,
    GitLabCIError,
    GitLabNotFoundError,
    GitLabResponseShapeError,
    MalformedRemoteUrlError,
    MissingCredentialError,
    NoRemoteConfiguredError,
    NotGitLabHostError,
    RepositoryNotFoundError,
    TransportError,
)


def test_api_error():
    e = GitLabApiError(500, "Internal Server Error", "something broke")
    assert e.status_code == 500
    assert e.kind == "UpstreamApiError"
    assert str(e) == "GitLab API Error 500 Internal Server Error: something broke"


def test_auth_error_401():
    e = GitLabAuthError(401)
    assert e.status_code == 401
    assert "Unauthorized" in str(e)


def test_auth_error_403():
    e = GitLabAuthError(403)
    assert e.status_code == 403
    assert "Forbidden" in str(e)


def test_not_found_error():
    e = GitLabNotFoundError("resource not found")
    assert e.status_code == 404
    assert isinstance(e, GitLabApiError)


def test_shape_error():
    e = GitLabResponseShapeError(200, "id missing")
    assert e.kind == "UpstreamApiError"
    assert "Unexpected response shape: id missing" in str(e)


def test_transport_error_keeps_cause():
    cause = httpx.ConnectError("refused")
    e = TransportError(cause)
    assert e.cause is cause
    assert e.kind == "TransportError"
    assert not hasattr(e, "status_code")


def test_no_remote_detail():
    assert str(NoRemoteConfiguredError("origin")) == "Remote 'origin' is not configured"
    e = NoRemoteConfiguredError("origin", "No such remote")
    assert str(e).endswith(": No such remote")


def test_kinds_are_distinct():
    errors = [
        RepositoryNotFoundError("/tmp/x"),
        NoRemoteConfiguredError("origin"),
        NotGitLabHostError("https://github.com/a/b"),
        MalformedRemoteUrlError("https://gitlab.com/a"),
        MissingCredentialError(),
        GitLabApiError(500, "err"),
        TransportError(OSError("down")),
    ]
    assert all(isinstance(e, GitLabCIError) for e in errors)
    assert len({e.kind for e in errors}) == len(errors)
