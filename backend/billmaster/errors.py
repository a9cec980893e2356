# Overview: Error taxonomy shared by the invoice engine and the API layer.

from __future__ import annotations


class BillingError(Exception):
    """Base class for billing domain errors."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(BillingError):
    """Bad input, raised before any store mutation."""


class NotFoundError(BillingError):
    """Referenced item, customer or invoice does not exist."""

    status_code = 404


class InvalidTransitionError(BillingError):
    """Invoice status does not allow the requested transition."""

    status_code = 409


class ConflictError(BillingError):
    """A unique value (such as a category name) is already taken."""

    status_code = 409


class PermissionDeniedError(BillingError):
    """Acting user lacks the permission for an operation."""

    status_code = 403


class StoreError(BillingError):
    """The entity store failed (connectivity, exhausted retries, integrity)."""

    status_code = 503


class PartialFailureError(BillingError):
    """
    A unit of work failed after some of its steps ran.

    details carries:
    - failed_step: name of the step that raised
    - completed_steps: steps that ran before it
    - rolled_back: True when the completed steps were undone
    - cause: class name of the underlying error
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        failed_step: str,
        completed_steps: list[str],
        rolled_back: bool,
        cause: BaseException,
    ):
        super().__init__(
            message,
            details={
                "operation": operation,
                "failed_step": failed_step,
                "completed_steps": list(completed_steps),
                "rolled_back": rolled_back,
                "cause": type(cause).__name__,
            },
        )
        self.operation = operation
        self.failed_step = failed_step
        self.completed_steps = list(completed_steps)
        self.rolled_back = rolled_back
        self.cause = cause

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if isinstance(self.cause, BillingError):
            return self.cause.status_code
        return StoreError.status_code
