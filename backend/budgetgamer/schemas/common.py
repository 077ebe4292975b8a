"""Response envelopes shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

from budgetgamer.core.exceptions import BudgetGamerException

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Successful payload: ``{"status": "success", "data": ...}``."""

    status: str = "success"
    data: T


class ErrorDetail(BaseModel):
    """Stable machine-readable ``code`` plus a human message."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Rejected request: ``{"status": "error", "error": {...}}``."""

    status: str = "error"
    error: ErrorDetail

    @classmethod
    def from_exception(cls, exc: BudgetGamerException) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=exc.code, message=exc.message))
