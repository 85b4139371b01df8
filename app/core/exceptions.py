"""Custom exception classes."""

from typing import Optional

from fastapi import HTTPException, status


class NotFound(HTTPException):
    """Exception for resource not found."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class BadRequest(HTTPException):
    """Exception for bad request."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class RecordStoreError(Exception):
    """Exception for failed calls to the remote record store."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ReadOnlyObjectError(Exception):
    """Exception for mutations attempted on a view."""

    def __init__(self, message: str = "Views are read-only"):
        self.message = message
        super().__init__(message)
