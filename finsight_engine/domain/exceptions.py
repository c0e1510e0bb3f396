"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Caller passed a structurally invalid argument (not thin data)"""

    pass


class InsufficientDataError(DomainException):
    """No transaction history at all to build a summary from"""

    pass
