"""Domain error taxonomy.

Services raise these; the HTTP layer maps each one to a status code and a
tagged JSON body (see ``labinventory.main``).
"""

class InventoryError(Exception):
    """Base class for every recoverable failure of a core operation."""

    error = "InventoryError"
    http_status = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.error, "detail": self.detail}

class ValidationError(InventoryError):
    error = "ValidationError"
    http_status = 400

class NotFound(InventoryError):
    error = "NotFound"
    http_status = 404

class InsufficientStock(InventoryError):
    error = "InsufficientStock"
    http_status = 400

class InvalidTransition(InventoryError):
    error = "InvalidTransition"
    http_status = 400

class ConcurrencyConflict(InventoryError):
    error = "ConcurrencyConflict"
    http_status = 409

class PermissionDenied(InventoryError):
    error = "PermissionDenied"
    http_status = 403

class Unauthorized(InventoryError):
    error = "Unauthorized"
    http_status = 401
