class AppError(Exception):
    """Base class for errors reported to the client as {"message": ...}."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400


class ConflictError(AppError):
    """State invariant violation: double check-in, duplicate identity."""

    status_code = 400


class AuthError(AppError):
    """Missing, invalid or expired token, or a deactivated account."""

    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class InternalError(AppError):
    status_code = 500


class AlreadyCheckedInError(ConflictError):
    def __init__(self, message: str = "You are already checked in. Please check out first."):
        super().__init__(message)


class AttendanceCompletedError(ConflictError):
    def __init__(self, message: str = "You have already completed attendance for today."):
        super().__init__(message)


class NoActiveCheckInError(NotFoundError):
    # Reported as a bad request: the client asked for a transition the state forbids.
    status_code = 400

    def __init__(self, message: str = "No active check-in found. Please check in first."):
        super().__init__(message)
