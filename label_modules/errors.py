"""
Error taxonomy shared by every stage of the inpainting workflow.

Each stage raises one of these; `main.py` maps them to HTTP status codes and a
structured payload. Collaborator exceptions are translated at the adapter that
talks to the collaborator, never further up.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    error_type: str = "InternalError"
    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFoundError(WorkflowError):
    """Input object is missing from the source store."""

    error_type = "NotFound"
    status_code = 404


class ForbiddenError(WorkflowError):
    """A collaborator rejected our credentials or access."""

    error_type = "Forbidden"
    status_code = 403


class ValidationError(WorkflowError):
    """Malformed or missing inputs, or a file the pipeline cannot read."""

    error_type = "ValidationError"
    status_code = 400


class NoFieldsFoundError(WorkflowError):
    error_type = "NoFieldsFound"
    status_code = 404


class ReconciliationFailedError(WorkflowError):
    error_type = "ReconciliationFailed"
    status_code = 422


class ServiceUnavailableError(WorkflowError):
    """A collaborator call failed after exhausting retries (rate limit, overload, quota)."""

    error_type = "ServiceUnavailable"
    status_code = 503


class InternalError(WorkflowError):
    error_type = "InternalError"
    status_code = 500
