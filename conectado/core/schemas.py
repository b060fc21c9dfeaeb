"""Core schema definitions for standardized API responses.

This module provides base schemas for consistent API response format
across the application.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope.

    All API endpoints return responses wrapped in this format so clients
    can rely on one shape for success and failure alike.

    Example success response:
        {
            "success": true,
            "message": "Mensaje enviado",
            "data": { ... },
            "errors": null
        }

    Example error response:
        {
            "success": false,
            "message": "Recurso no encontrado",
            "data": null,
            "errors": [{ "code": "NOT_FOUND", "message": "Recurso no encontrado" }]
        }
    """

    success: bool = True
    message: str = ""
    data: T | None = None
    errors: list[dict[str, Any]] | None = None


class PagedResult(BaseModel):
    """Paging fields shared by list payloads."""

    page: int
    page_size: int
    total_count: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.page > 1


def success_response(data: T, message: str = "") -> ApiResponse[T]:
    """Create a successful API response.

    Args:
        data: The response data.
        message: Human-readable summary for the client.

    Returns:
        ApiResponse with success=True.
    """
    return ApiResponse(success=True, message=message, data=data)


def failure_response(message: str, data: T | None = None) -> ApiResponse[T]:
    """Create an unsuccessful response for expected, non-exceptional outcomes.

    Used where an operation returns a boolean "nothing happened" result
    (e.g. a badge already held) and the caller still gets a 200.
    """
    return ApiResponse(success=False, message=message, data=data)
