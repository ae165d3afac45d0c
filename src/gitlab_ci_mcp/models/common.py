"""Common GitLab models shared across domains."""

from __future__ import annotations

from urllib.parse import quote

from pydantic import ConfigDict

from .base import CIRecord


class User(CIRecord):
    id: int
    username: str = ""
    name: str = ""
    state: str = ""
    avatar_url: str | None = None
    web_url: str = ""


class ProjectIdentity(CIRecord):
    """A GitLab project as derived from a repository remote URL."""

    model_config = ConfigDict(frozen=True)

    host: str
    namespace: str
    name: str
    encoded_path_id: str

    @classmethod
    def from_parts(cls, host: str, namespace: str, name: str) -> ProjectIdentity:
        return cls(
            host=host,
            namespace=namespace,
            name=name,
            encoded_path_id=quote(f"{namespace}/{name}", safe=""),
        )

    @property
    def path_with_namespace(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def api_url(self) -> str:
        return f"https://{self.host}/api/v4"
