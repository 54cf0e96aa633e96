"""
Workflow error taxonomy.

Every failure raised by the lifecycle and dispatch operations inherits
WorkflowError, which carries:
- type:        error kind (unauthorized / no_successor / validation_error / ...)
- code:        machine-readable code
- message:     human-readable reason, surfaced unmodified to the caller
- detail:      optional extra data
- http_status: status used when the gateway renders the error

Local errors (Unauthorized, NoSuccessorState, ValidationGap,
TransitionInProgress) are raised before any request is sent.
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for all workflow errors."""

    type = "error"
    code = "UNKNOWN_ERROR"
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
        }


class Unauthorized(WorkflowError):
    """The actor's role or session lacks the capability for the operation."""

    type = "unauthorized"
    code = "UNAUTHORIZED"
    http_status = 403


class NoSuccessorState(WorkflowError):
    """Advance requested on a terminal or dispatch-only status."""

    type = "no_successor"
    code = "NO_SUCCESSOR_STATE"
    http_status = 409


class ValidationGap(WorkflowError):
    """A required selection (pharmacy, prescription id, keyword) is missing."""

    type = "validation_error"
    code = "VALIDATION_GAP"
    http_status = 400


class TransitionInProgress(WorkflowError):
    """Another advance/dispatch for the same prescription has not resolved yet."""

    type = "busy"
    code = "TRANSITION_IN_PROGRESS"
    http_status = 409


class RemoteFailure(WorkflowError):
    """
    Transport error, non-2xx response, or malformed response body.

    `status` is the upstream HTTP status (None for transport errors) and
    `payload` the decoded upstream body, if any.
    """

    type = "remote_failure"
    code = "REMOTE_FAILURE"
    http_status = 502

    def __init__(
        self,
        message,
        status: Optional[int] = None,
        payload: Any = None,
        code=None,
        detail=None,
    ):
        self.status = status
        self.payload = payload
        if detail is None and status is not None:
            detail = {"upstream_status": status}
        super().__init__(message, code=code, detail=detail)
