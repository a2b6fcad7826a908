"""
Domain error taxonomy.

Services raise these; the exception handler registered in ``app.main``
renders them as ``{"error": kind, "message": ..., "details": {...}}``.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import status


class EnerjiOSError(Exception):
    """Base class for errors that map to a structured API response."""

    kind: str = "error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.details}


class NotFoundError(EnerjiOSError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(EnerjiOSError):
    """Illegal state for the requested operation."""

    kind = "conflict"
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientResourceError(EnerjiOSError):
    kind = "insufficient_resource"
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationFailed(EnerjiOSError):
    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


# ---------------------------------------------------------------------------
# Quotes & products
# ---------------------------------------------------------------------------


class QuoteNotFound(NotFoundError):
    kind = "quote_not_found"

    def __init__(self, quote_id: str) -> None:
        super().__init__("Quote not found", {"quote_id": quote_id})


class QuoteAlreadyApproved(ConflictError):
    kind = "quote_already_approved"

    def __init__(self, quote_id: str) -> None:
        super().__init__("Quote is already approved", {"quote_id": quote_id})


class QuoteLocked(ConflictError):
    kind = "quote_locked"

    def __init__(self, quote_id: str, status_value: str) -> None:
        super().__init__(
            f"Quote can no longer be modified in status {status_value}",
            {"quote_id": quote_id, "status": status_value},
        )


class InvalidQuoteState(ConflictError):
    kind = "invalid_quote_state"

    def __init__(self, quote_id: str, current: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} a quote in status {current}",
            {"quote_id": quote_id, "status": current, "action": action},
        )


class ProductNotFound(NotFoundError):
    kind = "product_not_found"

    def __init__(self, product_id: str) -> None:
        super().__init__("Product not found", {"product_id": product_id})


class InsufficientStock(InsufficientResourceError):
    kind = "insufficient_stock"

    def __init__(self, product_name: str, available: int, required: int | Decimal) -> None:
        self.product_name = product_name
        self.available = available
        self.required = int(required)
        super().__init__(
            f"Insufficient stock for product {product_name}. "
            f"Available: {available}, Required: {self.required}",
            {
                "product_name": product_name,
                "available": available,
                "required": self.required,
                "shortfall": self.required - available,
            },
        )


# ---------------------------------------------------------------------------
# Project requests
# ---------------------------------------------------------------------------


class ProjectRequestNotFound(NotFoundError):
    kind = "project_request_not_found"

    def __init__(self, request_id: str) -> None:
        super().__init__("Project request not found", {"project_request_id": request_id})


class InvalidTransition(ConflictError):
    kind = "invalid_transition"

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}",
            {"from": from_status, "to": to_status},
        )
