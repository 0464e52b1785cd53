class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class PaymentError(DomainError):
    """Raised when a payment was declined or never completed."""


class UpstreamError(DomainError):
    """Raised when the payment gateway or the database cannot be reached."""


class ConcurrencyConflict(DomainError):
    """The conditional balance update matched no row."""


class CheckInFailedError(DomainError):
    """Raised when a check-in could not be committed after one retry."""

    def __init__(self, message: str = "check-in failed, please retry"):
        super().__init__(message)
