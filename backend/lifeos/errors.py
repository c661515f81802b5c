from typing import Optional


class LifeOSError(Exception):
    """Base class for errors raised by the LifeOS core."""


class Unauthenticated(LifeOSError):
    def __init__(self, message: str = "Not authenticated. Please sign in.") -> None:
        super().__init__(message)


class NotFound(LifeOSError):
    def __init__(self, entity: str, record_id: str) -> None:
        super().__init__(f"{entity} {record_id} not found or not owned by user")
        self.entity = entity
        self.record_id = record_id


class PersistenceError(LifeOSError):
    """The primary store rejected or failed a request.

    ``str(exc)`` is the store's own message so callers can show it as-is.
    """

    def __init__(self, message: str, *, code: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class SchemaMismatch(PersistenceError):
    """Constraint violation, unknown column or missing table."""


class MirrorError(LifeOSError):
    """The external calendar failed; never fatal to a primary operation."""


class CalendarNotConnected(MirrorError):
    def __init__(self, message: str = "Google Calendar is not connected") -> None:
        super().__init__(message)


class ValidationError(LifeOSError):
    """Malformed numeric or date input."""
