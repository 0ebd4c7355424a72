class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None, code: str = "app_error"):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.code = code
        super().__init__(self.message)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
            code="not_found",
        )

class ScheduleConflictError(AppError):
    """Raised when a class would double-book a room or a teacher."""
    def __init__(self, message: str, conflict_type: str, details: dict = None):
        self.conflict_type = conflict_type
        super().__init__(message, status_code=409, details=details, code=conflict_type)

class ScheduleValidationError(AppError):
    """Raised when a request is well-formed but inconsistent with stored state."""
    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, status_code=422, details=details, code="validation_error")

class CurriculumImportError(AppError):
    """Raised when an uploaded CPR sheet cannot be read."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details, code="invalid_cpr_sheet")
