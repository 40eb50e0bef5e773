"""Typed outcome of an order operation."""
from dataclasses import dataclass
from typing import Optional

from restopos.exceptions import PosError


@dataclass(frozen=True)
class OperationResult:
    """
    Either ``order`` (success) or ``error`` (a ValidationError,
    ConflictError or InternalError), never both.
    """
    order: Optional[object] = None
    error: Optional[PosError] = None

    @classmethod
    def success(cls, order) -> 'OperationResult':
        return cls(order=order)

    @classmethod
    def failure(cls, error: PosError) -> 'OperationResult':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error else None

    def unwrap(self):
        """Return the order or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.order
