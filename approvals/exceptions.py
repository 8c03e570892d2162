"""
Error taxonomy for the approvals dashboards.

Every failure surfaced to an admin is one of these, so views can pick the
right status code and message without inspecting HTTP details.
"""


class ApprovalsError(Exception):
    """Base class for all approvals errors."""
    default_message = 'Something went wrong. Please try again.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkFailure(ApprovalsError):
    """The backend could not be reached (connection error or timeout)."""
    default_message = 'Unable to load data. Please check your connection and try again.'


class ValidationFailure(ApprovalsError):
    """Rejected client-side before any request was made."""
    default_message = 'Invalid request.'

    def __init__(self, message=None, field=None):
        self.field = field
        super().__init__(message)


class DependencyConflict(ApprovalsError):
    """
    The backend refused a destructive action because other records
    still reference the target (active orders, listings, subcategories).
    """
    default_message = 'This record still has active dependencies.'

    def __init__(self, message=None, dependencies=None, suggestions=None):
        self.dependencies = dependencies or {}
        self.suggestions = list(suggestions or [])
        super().__init__(message)

    def as_dict(self):
        return {
            'warning': self.message,
            'dependencies': self.dependencies,
            'suggestions': self.suggestions,
        }


class UnknownServerError(ApprovalsError):
    """Any other non-success response from the backend."""
    default_message = 'The server could not complete the request.'

    def __init__(self, message=None, status_code=None):
        self.status_code = status_code
        super().__init__(message)
