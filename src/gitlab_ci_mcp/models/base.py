"""Base model for records read from the GitLab CI API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class CIRecord(BaseModel):
    """Fields GitLab adds in newer versions are dropped, not rejected."""

    model_config = ConfigDict(extra="ignore")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
