class DomainError(Exception):
    pass


class CapacityExceededError(DomainError):
    """The party would overflow the slot. Carries the true remaining count."""

    def __init__(self, remaining: int, message: str = "capacity exceeded") -> None:
        super().__init__(message)
        self.remaining = remaining


class InvalidRequestError(DomainError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class ReservationNotFoundError(DomainError):
    pass


class CancelNotAllowedError(DomainError):
    pass


class TransientStoreError(Exception):
    """Storage unreachable or lock wait aborted; safe to retry with backoff."""
