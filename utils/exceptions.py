"""
Errors raised by the stores and the recurring services.
"""


class LedgerError(Exception):
    """Base class for every error this application raises on purpose."""


class StoreUnavailable(LedgerError):
    """
    Raised when a store call fails for infrastructure reasons
    (database locked, file missing, connection closed).
    """

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        full_message = f"{operation}: {message}" if operation else message
        super().__init__(full_message)


class DuplicateKey(LedgerError):
    """
    Raised by the transaction store when a recurring instance already
    exists for the same (user, template, date).
    """

    def __init__(self, template_id: str, date_str: str):
        self.template_id = template_id
        self.date_str = date_str
        super().__init__(
            f"Transaction for template {template_id} on {date_str} already exists"
        )


class InvalidTemplate(LedgerError, ValueError):
    """Raised for a recurring template that cannot be scheduled."""

    def __init__(self, message: str, template_id: str | None = None):
        self.template_id = template_id
        super().__init__(message)
