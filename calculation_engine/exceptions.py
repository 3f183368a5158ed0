"""Exceptions raised by the calculation engine."""
from typing import Optional


class CalculationError(Exception):
    """Base class for calculation failures."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "CALCULATION_ERROR"

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidRequest(CalculationError):
    """The request is missing or has malformed required fields. No partial result."""

    def __init__(self, issues: list[str]) -> None:
        super().__init__("; ".join(issues) or "invalid request", "INVALID_REQUEST")
        self.issues = list(issues)
