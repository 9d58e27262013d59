# app/core/exceptions.py
from fastapi import HTTPException, status


class AdminError(HTTPException):
    """Base class for errors raised by the resource engine"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal Server Error"

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)

    @property
    def message(self) -> str:
        return self.detail


class ResourceNotFound(AdminError):
    """Unknown resource key; raised before the store is touched"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class RowNotFound(AdminError):
    """The store answered but no row matched the primary key"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Item not found"


class ValidationError(AdminError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class ReadOnlyResource(AdminError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_detail = "Resource is read-only"


class StoreError(AdminError):
    """Failure reported by the database driver"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Database error"

    def __init__(self, detail: str = None):
        self.driver_message = detail or self.default_detail
        super().__init__(f"Database error: {self.driver_message}")


class RowImportError(Exception):
    """Per-row import failure; always converted into a report entry"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
