"""
errors.py
Error types raised by the fund manager.

Validation errors are raised before anything is written, so callers can fix
the input and retry. DataAccessError wraps failures of the SQLite store.
"""

from __future__ import annotations


class FundError(Exception):
    """Base class for every error raised by this application."""


class ValidationError(FundError):
    pass


class NoPeriodSelected(ValidationError):
    def __init__(self, message: str = "Please select at least one active month."):
        super().__init__(message)


class InactivePeriod(ValidationError):
    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"{year}-{month:02d} is not an active collection month.")


class AllocationExceedsTotal(ValidationError):
    def __init__(self, allocated: float, total: float):
        self.allocated = allocated
        self.total = total
        super().__init__(
            f"Distributed amounts ({allocated:.2f}) cannot exceed total amount ({total:.2f})."
        )


class AllocationMismatch(ValidationError):
    def __init__(self, allocated: float, total: float):
        self.allocated = allocated
        self.total = total
        super().__init__(
            f"Allocated sum ({allocated:.2f}) does not match donation amount ({total:.2f})."
        )


class EmptyAllocation(ValidationError):
    def __init__(self, message: str = "Please enter the amount for the selected months."):
        super().__init__(message)


class InvalidAmount(ValidationError):
    pass


class RequestNotPending(ValidationError):
    def __init__(self, request_id: int, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Donation request {request_id} is already {status}.")


class DataAccessError(FundError):
    """Raised when the database rejects a read or write."""
