"""Domain-level exceptions.

Services raise these errors to express business rule violations.
The service boundary catches them and hands them to callers as Result values.
"""


class DomainError(Exception):
    """Base class for all domain errors."""

    code = 'domain_error'

    def __init__(self, message: str = ''):
        self.message = message
        super().__init__(message)


class ValidationError(DomainError):
    """Input violates a business validation rule."""

    code = 'validation_error'


class ConflictError(DomainError):
    """Entity with the same unique key already exists."""

    code = 'conflict'


class AuthError(DomainError):
    """Credentials rejected, or no active session for an operation that needs one."""

    code = 'auth_error'


class NotFoundError(DomainError):
    """Requested entity does not exist."""

    code = 'not_found'


class PermissionDeniedError(DomainError):
    """Caller lacks permission for the requested action."""

    code = 'permission_denied'


class RemoteError(DomainError):
    """Remote store or local storage failed to complete the request."""

    code = 'remote_error'
