"""Exceptions raised by the grid engine."""


class GridError(Exception):
    """Base exception for grid engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class OverlayConflictError(GridError):
    """Raised when new rows and pending edits would coexist."""


class SubmissionInProgressError(GridError):
    """Raised when a save or delete is started while another is in flight."""

    def __init__(self, message: str = "Another save or delete is still in progress"):
        super().__init__(message)


class UnknownRowError(GridError):
    """Raised when a row key or record does not match any overlay row."""


class UnknownColumnError(GridError):
    """Raised when a column name is not part of the grid's metadata."""


class UnknownCriterionError(GridError):
    """Raised when no filter or sort exists at a position."""


class NoDeleteStrategyError(GridError):
    """Raised when records of an object cannot be identified for deletion."""
