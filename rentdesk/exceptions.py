"""
Error kinds raised by the rent-request core.

Every business-rule violation is a subclass of RentalError and carries a
short machine-readable ``code`` plus optional structured ``details`` so the
HTTP layer can render a precise message without parsing strings.
"""


class RentalError(Exception):
    """Base class for all errors surfaced by the core."""

    code = "error"

    def __init__(self, message: str = "Error: request failed", details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ValidationError(RentalError):
    """Raised when input is malformed or outside policy (dates, filters, fields)."""

    code = "validation_error"

    def __init__(self, message: str = "Error: invalid input", details: dict | None = None) -> None:
        super().__init__(message, details)


class DuplicateRequestError(ValidationError):
    """Raised when the same client re-submits an overlapping request too soon."""

    code = "duplicate_request"

    def __init__(self, message: str = "Error: a similar request was submitted recently",
                 details: dict | None = None) -> None:
        super().__init__(message, details)


class NotFoundError(RentalError):
    """Raised when a referenced record does not exist."""

    code = "not_found"

    def __init__(self, message: str = "Error: record not found", details: dict | None = None) -> None:
        super().__init__(message, details)


class RentRequestNotFoundError(NotFoundError):
    """Raised when a rent request ID cannot be found."""

    def __init__(self, message: str = "Error: rent request not found", details: dict | None = None) -> None:
        super().__init__(message, details)


class VehicleNotFoundError(NotFoundError):
    """Raised when a vehicle ID cannot be found (or is no longer active)."""

    def __init__(self, message: str = "Error: vehicle not found", details: dict | None = None) -> None:
        super().__init__(message, details)


class InvalidTransitionError(RentalError):
    """Raised when a status change is not allowed from the current status."""

    code = "invalid_transition"

    def __init__(self, current, requested, message: str | None = None) -> None:
        self.current = current
        self.requested = requested
        cur = getattr(current, "value", current)
        req = getattr(requested, "value", requested)
        super().__init__(
            message or f"Error: invalid status transition from {cur} to {req}",
            {"current_status": cur, "requested_status": req},
        )


class BookingConflictError(RentalError):
    """Raised when an approval or confirmation would double-book a vehicle."""

    code = "booking_conflict"

    def __init__(self, conflicts, message: str = "Error: vehicle is already booked for these dates") -> None:
        self.conflicts = list(conflicts)
        super().__init__(message, {"conflicting_bookings": [c.to_dict() for c in self.conflicts]})


class ForbiddenError(RentalError):
    """Raised when an operation is not permitted in the record's current state."""

    code = "forbidden"

    def __init__(self, message: str = "Error: operation not permitted", details: dict | None = None) -> None:
        super().__init__(message, details)


class DependencyError(RentalError):
    """Raised when the persistence collaborator fails."""

    code = "dependency_error"

    def __init__(self, message: str = "Error: storage failure", details: dict | None = None) -> None:
        super().__init__(message, details)


class OperationTimeoutError(DependencyError):
    """Raised when an operation runs past its caller-supplied deadline."""

    code = "timeout"

    def __init__(self, message: str = "Error: operation timed out", details: dict | None = None) -> None:
        super().__init__(message, details)
