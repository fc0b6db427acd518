"""Error taxonomy surfaced by plan, option and session operations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence


class PlanTrackerError(Exception):
    """Base class for errors that are reported back to the user."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def detail(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class DuplicateLabel(PlanTrackerError):
    """Raised when an option label already exists for its vocabulary."""

    code = "duplicate_label"
    status_code = 409

    def __init__(self, option_type: str, label: str) -> None:
        super().__init__(f"{label!r} already exists in {option_type}.")
        self.option_type = option_type
        self.label = label


class OptionNotFound(PlanTrackerError):
    """Raised when renaming or deleting a label that does not exist."""

    code = "option_not_found"
    status_code = 404

    def __init__(self, option_type: str, label: str) -> None:
        super().__init__(f"{label!r} was not found in {option_type}.")
        self.option_type = option_type
        self.label = label


class OptionInUse(PlanTrackerError):
    """Raised when the store refuses to delete a label still referenced by plans."""

    code = "option_in_use"
    status_code = 409

    def __init__(self, option_type: str, label: str) -> None:
        super().__init__(
            f"{label!r} could not be removed from {option_type}; it may still be used by a plan."
        )
        self.option_type = option_type
        self.label = label


class PartialCascadeFailure(PlanTrackerError):
    """Raised when a rename cascade updated some plans but not all of them."""

    code = "partial_cascade_failure"
    status_code = 500

    def __init__(
        self,
        option_type: str,
        old_label: str,
        new_label: str,
        *,
        updated_ids: Sequence[str],
        failed_ids: Sequence[str],
    ) -> None:
        super().__init__("The rename could not be applied to every plan. Please try again.")
        self.option_type = option_type
        self.old_label = old_label
        self.new_label = new_label
        self.updated_ids = list(updated_ids)
        self.failed_ids = list(failed_ids)


class StaleSession(PlanTrackerError):
    """Raised when an operation needs a signed-in profile and none is present."""

    code = "stale_session"
    status_code = 401

    def __init__(self, message: str = "Please sign in to continue.") -> None:
        super().__init__(message)


class PermissionDenied(PlanTrackerError):
    """Raised when the acting profile cannot manage the target resource."""

    code = "permission_denied"
    status_code = 403


class ValidationRequired(PlanTrackerError):
    """Raised before any write when submitted fields are missing or invalid."""

    code = "validation_required"
    status_code = 400

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()) or "Invalid submission.")

    @property
    def detail(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "errors": self.errors}
