"""Error taxonomy for the preorders context.

Domain rule failures derive from protean's ``ValidationError`` so they carry
the usual ``{field: [messages]}`` payload. Infrastructure failures form a
separate hierarchy so callers can tell "your request is invalid" apart from
"try again".
"""

from protean.exceptions import ValidationError


class ItemLimitExceeded(ValidationError):
    """A cart line would exceed the per-item quantity cap."""


class CartClosed(ValidationError):
    """The cart has expired or was merged away and can no longer be mutated."""


class IllegalTransition(ValidationError):
    """The requested status change is not allowed from the order's current status."""


class InfrastructureError(Exception):
    """Storage could not complete the request; the caller may retry."""


class ConcurrencyConflict(InfrastructureError):
    """A conditional write kept conflicting after the bounded number of retries."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Write conflict on {key} after {attempts} attempts")
