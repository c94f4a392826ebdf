class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when caller input breaks a field invariant. Fixable by correcting the input."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ScheduleConflictError(AppError):
    """Raised when a template would double-book a teacher or a room."""
    def __init__(self, message: str, *, teacher_conflicts: list[dict], room_conflicts: list[dict]):
        super().__init__(
            message,
            status_code=409,
            details={"teacher_conflicts": teacher_conflicts, "room_conflicts": room_conflicts},
        )
        self.teacher_conflicts = teacher_conflicts
        self.room_conflicts = room_conflicts

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)
        self.resource_type = resource_type
        self.resource_id = resource_id

class StateError(AppError):
    """Raised when an operation is not allowed in the record's current state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=409, details=details)
