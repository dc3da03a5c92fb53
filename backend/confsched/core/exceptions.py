class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ScheduleApiError(AppError):
    """Raised by routes to turn a non-success schedule result into an HTTP error body."""
    def __init__(self, error_code: str, message: str, status_code: int, details: dict = None):
        super().__init__(message, status_code=status_code, details=details)
        self.error_code = error_code

