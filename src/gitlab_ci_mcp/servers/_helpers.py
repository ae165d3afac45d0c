"""Shared helper functions for server modules."""

from __future__ import annotations

import functools
import re
from pathlib import Path


@functools.cache
def _load_file(base_dir: str, filename: str) -> str:
    """Load a file from the given directory with path traversal protection.

    Results are cached; static files do not change at runtime.
    """
    if "/" in filename or "\\" in filename or ".." in filename:
        msg = f"Invalid filename: {filename}"
        raise ValueError(msg)
    base = Path(base_dir)
    path = base / filename
    if not path.resolve().is_relative_to(base.resolve()):
        msg = f"Invalid filename: {filename}"
        raise ValueError(msg)
    return path.read_text(encoding="utf-8")


# ════════════════════════════════════════════════════════════════════
# GitLab URL parsing
# ════════════════════════════════════════════════════════════════════

# Matches:  <host>/<namespace/project>/-/pipelines/<id>
_PIPELINE_RE = re.compile(r"https?://[^/]+/.+?/-/pipelines/(\d+)")
# Matches:  <host>/<namespace/project>/-/jobs/<id>
_JOB_RE = re.compile(r"https?://[^/]+/.+?/-/jobs/(\d+)")


def _parse_pipeline_ref(value: str) -> str:
    """Extract the pipeline ID from a GitLab pipeline URL.

    If *value* is not a pipeline URL, returns it unchanged.
    """
    m = _PIPELINE_RE.match(value.strip())
    return m.group(1) if m else value


def _parse_job_ref(value: str) -> str:
    """Extract the job ID from a GitLab job URL.

    If *value* is not a job URL, returns it unchanged.
    """
    m = _JOB_RE.match(value.strip())
    return m.group(1) if m else value
