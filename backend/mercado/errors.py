# Overview: Service-layer exception hierarchy; each error knows its HTTP status.

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    """400-level input problem. Raised before any mutation is attempted."""
    status_code = 400


class NotFound(ServiceError):
    """Product, customer or sale reference does not resolve."""
    status_code = 404


class InsufficientStock(ServiceError):
    """Requested quantity exceeds the product's stock."""
    status_code = 409

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.available = available
        self.requested = requested


class InvalidState(ServiceError):
    """Operation not allowed in the sale's current state."""
    status_code = 409


class StorageFailure(ServiceError):
    """The unit of work could not be committed. Nothing was applied."""
    status_code = 500
