"""Custom exceptions for the restaurant POS core."""


class PosError(Exception):
    """Base exception for all application errors."""
    kind = 'internal'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['kind'] = self.kind
        return rv


class ValidationError(PosError):
    """Malformed input: missing fields, wrong types, unknown product or payment method."""
    kind = 'validation'

    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(ValidationError):
    """Exception raised when a referenced resource does not exist."""

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(PosError):
    """A domain precondition does not hold (table busy, wrong order status, ...)."""
    kind = 'conflict'

    def __init__(self, message, status_code=409, payload=None):
        super().__init__(message, status_code, payload)


class InsufficientStockError(ConflictError):
    """Raised when an order asks for more than the available stock."""

    def __init__(self, product_name, required, available):
        message = f"Insufficient stock for {product_name}. Available: {available}, requested: {required}"
        super().__init__(message, payload={
            'product': product_name,
            'required': required,
            'available': available,
        })


class InternalError(PosError):
    """Unexpected failure inside a unit of work; details go to the log only."""
    kind = 'internal'

    def __init__(self, message="Internal error, the operation was not applied"):
        super().__init__(message, 500)
