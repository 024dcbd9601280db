"""
Exception types raised by the customer analytics core.
"""

from .enums import ErrorKind


class CustomerAnalyticsError(Exception):
    """Base class for recoverable analytics errors."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TableLoadError(CustomerAnalyticsError):
    """The order table could not be fetched from its source."""

    kind = ErrorKind.LOAD_FAILURE


class TableParseError(CustomerAnalyticsError):
    """The order table was fetched but could not be parsed."""

    kind = ErrorKind.PARSE_FAILURE


class CustomerNotFoundError(CustomerAnalyticsError):
    """A query named a customer id absent from the loaded index."""

    kind = ErrorKind.CUSTOMER_NOT_FOUND

    def __init__(self, customer_id: str):
        super().__init__(f"Customer {customer_id} not found in dataset.")
        self.customer_id = customer_id
