"""
Error taxonomy for the meal generation pipeline.

Submission and query errors are raised to the caller and mapped to HTTP
responses by the web layer. Errors that happen after a job has been
accepted are recorded on the job instead (see generation.executor).
"""

from typing import Any


class MealPlannerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthRequired(MealPlannerError):
    status_code = 401
    code = "auth_required"

    def __init__(self, message: str = "Authentication required", details: Any = None):
        super().__init__(message, details)


class InvalidRequest(MealPlannerError):
    status_code = 400
    code = "invalid_request"


class InvalidPlan(InvalidRequest):
    """Plan payload failed structural validation. Details map field -> messages."""

    code = "invalid_plan"

    def __init__(self, details: dict[str, list[str]], message: str = "Invalid plan data"):
        super().__init__(message, details)


class NotFound(MealPlannerError):
    """Missing, or owned by someone else. Both are reported the same way."""

    status_code = 404
    code = "not_found"


class NoGroupsAvailable(MealPlannerError):
    status_code = 400
    code = "no_groups_available"

    def __init__(
        self,
        message: str = "No groups found. Please create some groups first.",
        details: Any = None,
    ):
        super().__init__(message, details)


class PlanNotGenerable(MealPlannerError):
    status_code = 400
    code = "plan_not_generable"


class StoreUnavailable(MealPlannerError):
    """Transient infrastructure failure. Pollers treat this as a missed tick."""

    status_code = 503
    code = "store_unavailable"
    retryable = True

    def __init__(self, message: str = "Job store temporarily unavailable", details: Any = None):
        super().__init__(message, details)


class GenerationFailed(MealPlannerError):
    """The external generator failed or returned nothing usable."""

    code = "generation_failed"


class InternalError(MealPlannerError):
    """Catch-all. Never carries internal detail to the caller."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


# =============================================================================
# Store-level errors (never leave the server as-is)
# =============================================================================


class StoreError(Exception):
    """A backend could not complete a read or write."""


class TerminalStateError(StoreError):
    """Attempted to change a job that is already completed or failed."""

    def __init__(self, job_id: str, status: str):
        super().__init__(f"Job {job_id} is already {status}")
        self.job_id = job_id
        self.status = status


class ProgressRegressionError(StoreError):
    """Attempted to move a running job's progress backwards."""

    def __init__(self, job_id: str, current: int, requested: int):
        super().__init__(f"Job {job_id} progress cannot go from {current} to {requested}")
        self.job_id = job_id
        self.current = current
        self.requested = requested
