"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    kind = "InternalError"

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    kind = "NotFound"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    kind = "Unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    kind = "Forbidden"

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    kind = "BadRequest"

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    kind = "Conflict"

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    kind = "ValidationError"

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


# ============================================================================
# Queue errors
# ============================================================================


class PreconditionFailedException(AppException):
    """A queue operation was refused because of the current clinic/doctor state."""

    kind = "PreconditionFailed"

    def __init__(self, message: str = "Precondition failed"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ClinicClosedException(PreconditionFailedException):
    """Clinic is closed or outside its operating hours."""

    kind = "ClinicClosed"

    def __init__(self, message: str = "Clinic is currently closed"):
        super().__init__(message)


class DoctorUnavailableException(PreconditionFailedException):
    """Doctor is inactive or not taking patients right now."""

    kind = "DoctorUnavailable"

    def __init__(self, message: str = "Doctor is not available"):
        super().__init__(message)


class AlreadyQueuedException(PreconditionFailedException):
    """Patient already holds a waiting ticket."""

    kind = "AlreadyQueued"

    def __init__(self, message: str = "Patient already in queue"):
        super().__init__(message)


class NoMoreInScopeException(AppException):
    """No waiting ticket beyond the current serving number."""

    kind = "NoMoreInScope"

    def __init__(self, message: str = "No more patients to serve", current_number: int = 0):
        """Initialize with 400 status code."""
        self.current_number = current_number
        super().__init__(message, status_code=400)


class TicketNotCancellableException(AppException):
    """Ticket does not exist, is not the caller's, or has left the waiting state."""

    kind = "NotFoundOrAlreadyProcessed"

    def __init__(self, message: str = "Queue not found or already processed"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ConflictRaceException(ConflictException):
    """Concurrent queue operations collided on the same scope."""

    kind = "ConflictRace"

    def __init__(self, message: str = "Queue is busy, please retry"):
        super().__init__(message)


class DownstreamUnavailableException(AppException):
    """The database or the counter store could not be reached."""

    kind = "DownstreamUnavailable"

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
