"""Domain errors raised by the booking core.

Each error carries a stable ``code`` for clients and maps to an HTTP status
at the API layer. Errors are raised before any side effect unless noted.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all booking-core errors."""

    status_code = 500
    category: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body used by the API layer."""
        payload: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.category:
            payload["category"] = self.category
        return payload


class ValidationError(DomainError):
    """Input failed shape or range validation."""

    status_code = 400


class NotFoundError(DomainError):
    """Resource is missing or not visible to the caller."""

    status_code = 404


class BookingNotFound(NotFoundError):
    """Booking does not exist or belongs to another party."""


class EditingRequestNotFound(NotFoundError):
    """Editing request does not exist or belongs to another party."""


class PayeeNotFound(NotFoundError):
    """Photographer profile does not exist."""


class PreconditionError(DomainError):
    """A business precondition does not hold."""

    status_code = 409


class PayeeUnavailable(PreconditionError):
    """Photographer is not accepting bookings."""


class EditingUnavailable(PreconditionError):
    """Photographer does not offer editing."""


class DuplicateRequest(PreconditionError):
    """An editing request already exists for the booking."""


class WrongSourceState(PreconditionError):
    """Transition was attempted from a status that does not allow it."""

    def __init__(self, entity: str, current: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} {entity} in status '{current}'",
            details={"current_status": current, "action": action},
        )


class CancelNotPermitted(PreconditionError):
    """Cancel policy forbids this party from cancelling."""

    status_code = 403


class PaymentError(DomainError):
    """Payment gateway rejected an operation."""

    status_code = 402
    category = "contact_support"


class PaymentAuthorizationFailed(PaymentError):
    """The hold for a new booking could not be placed."""

    category = "retry"


class PaymentCaptureExpired(PaymentError):
    """The hold expired before it could be captured."""

    status_code = 410


class PaymentCaptureFailed(PaymentError):
    """Capture failed for a reason other than hold expiry."""

    status_code = 502
    category = "retry"


class CheckoutTokenInvalid(DomainError):
    """Checkout token is unknown, expired or already redeemed."""

    status_code = 410
