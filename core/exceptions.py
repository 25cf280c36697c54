# core/exceptions.py
class CurriculumError(Exception):
    """Base exception for all curriculum mapping errors."""
    status_code = 400
    default_message = "An error occurred"
    default_code = "ERROR"

    def __init__(self, message=None, user_friendly=True, details=None, error_code=None):
        self.message = message or self.default_message
        self.user_friendly = user_friendly
        self.details = details or {}
        self.error_code = error_code or self.default_code
        super().__init__(self.message)

    def to_dict(self):
        return {
            'code': self.error_code,
            'message': self.message if self.user_friendly else InternalError.default_message,
            'details': self.details if self.user_friendly else {},
        }


class ValidationError(CurriculumError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Validation failed"
    default_code = "VALIDATION_ERROR"


class ConflictError(CurriculumError):
    """Exclusivity or uniqueness violation."""
    status_code = 409
    default_message = "Conflicting data"
    default_code = "CONFLICT"


class NotFoundError(CurriculumError):
    """Referenced entity is absent."""
    status_code = 404
    default_message = "Not found"
    default_code = "NOT_FOUND"


class InternalError(CurriculumError):
    """Unexpected failure in a dependency. Details stay in the server log."""
    status_code = 500
    default_message = "Internal error. Please try again later."
    default_code = "INTERNAL_ERROR"

    def __init__(self, message=None, user_friendly=False, details=None, error_code=None):
        super().__init__(message, user_friendly, details, error_code)
