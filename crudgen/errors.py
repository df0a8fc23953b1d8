"""Exception hierarchy for the crudgen scaffold pipeline.

Every failure the pipeline can surface derives from ``CrudgenError``.  The
``category`` attribute lets callers tell an upstream generation problem
(worth retrying) apart from a local packaging defect (worth reporting).
"""

from __future__ import annotations

from pathlib import Path


class CrudgenError(Exception):
    """Base class for all pipeline failures."""

    category: str = "error"
    retryable: bool = False


# ---------------------------------------------------------------------------
# Upstream generation failures
# ---------------------------------------------------------------------------


class UpstreamError(CrudgenError):
    """The upstream generation step did not yield usable source text."""

    category = "upstream"
    retryable = True


class TransportError(UpstreamError):
    """The generation endpoint could not be reached (network, timeout, deadline)."""

    def __init__(self, message: str, attempts: int = 1) -> None:
        self.attempts = attempts
        super().__init__(message)


class UpstreamProtocolError(UpstreamError):
    """The endpoint answered with a malformed or error-bearing envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ParseFailure(UpstreamError):
    """The response text contained no recognized section markers."""


# ---------------------------------------------------------------------------
# Local failures
# ---------------------------------------------------------------------------


class LocalError(CrudgenError):
    """A local step (workspace, archive) failed."""

    category = "local"


class FilesystemError(LocalError):
    """Workspace creation, file write, or archive write failed."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class NotFoundError(CrudgenError):
    """A referenced schema does not exist in the store."""

    category = "not_found"

    def __init__(self, schema_id: int) -> None:
        self.schema_id = schema_id
        super().__init__(f"Schema not found: {schema_id}")
