class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTransition(ValidationError):
    """Raised when a status change is not allowed from the current status."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class AuthenticationError(DomainError):
    """Raised when a login attempt fails.

    Subclasses carry a stable ``code`` so callers can tell a device-lock
    rejection apart from a bad password.
    """

    code = "authentication_failed"


class InvalidCredential(AuthenticationError):
    code = "invalid_credential"

    def __init__(self, message: str = "Invalid login identifier or credential"):
        super().__init__(message)


class DeviceLockViolation(AuthenticationError):
    code = "device_lock_violation"

    def __init__(self, message: str = "This account is locked to another device"):
        super().__init__(message)


class AccountNotFound(AuthenticationError):
    code = "account_not_found"

    def __init__(self, message: str = "Account not found"):
        super().__init__(message)
