class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised for missing or malformed input the caller can correct."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Raised when a referenced entity does not exist."""
    def __init__(self, resource_type: str, resource_id: str | None = None):
        if resource_id is None:
            message = f"{resource_type} not found"
        else:
            message = f"{resource_type} with id {resource_id} not found"
        super().__init__(message, status_code=404, details={"resource": resource_type})


class StateError(AppError):
    """Raised on an invalid lifecycle transition."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)


class ConflictError(AppError):
    """Raised when business rules reject a write; details carry every violation."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)
