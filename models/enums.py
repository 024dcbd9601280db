"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class LoyaltyStatus(str, Enum):
    """Loyalty tiers a customer summary can report"""

    NEW = "NEW"
    REGULAR = "REGULAR"
    VIP = "VIP"  # Declared tier; no rule assigns it yet


class CoordinatorState(str, Enum):
    """Load states of the query coordinator"""

    EMPTY = "empty"  # No table loaded
    LOADING = "loading"  # Fetch/parse in progress
    READY = "ready"  # Customer index built


class ErrorKind(str, Enum):
    """Recoverable error categories surfaced to consumers"""

    LOAD_FAILURE = "load_failure"
    PARSE_FAILURE = "parse_failure"
    CUSTOMER_NOT_FOUND = "customer_not_found"


class EventSource(str, Enum):
    """Producers of analytics events"""

    SCANNER = "scanner"  # Camera/QR code scanning
    MANUAL = "manual"  # Typed into a search box
    SYSTEM = "system"
    TEST = "test"
