"""Error hierarchy for the session store and conversation flow.

Guard failures are not errors: a failing guard redirects the conversation
to a recovery scene and never reaches this hierarchy.
"""


class OrderflowError(Exception):
    """Base exception for all Orderflow errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class SessionValidationError(OrderflowError):
    """Raised when a session has an invalid shape.

    Reading recovers locally by substituting a default session; saving and
    updating raise this to the caller.
    """

    def __init__(self, errors: list[str], cause: Exception | None = None) -> None:
        super().__init__(f"Session validation failed: {', '.join(errors)}", cause)
        self.errors = errors


class LockTimeoutError(OrderflowError):
    """Raised when a per-session lock could not be acquired in time.

    Only raised under the 'fail' lock timeout policy. Under 'proceed' the
    timeout is logged and the waiter continues past the stale lock.
    """

    def __init__(self, key: str, timeout: float) -> None:
        super().__init__(f"Timed out after {timeout}s waiting for session lock {key}")
        self.key = key
        self.timeout = timeout


class SessionNotFoundError(OrderflowError):
    """Raised by inspection paths when no record exists for a key.

    Ordinary reads create a default session instead.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Session {key} not found")
        self.key = key


class StorageIOError(OrderflowError):
    """Raised when the backing storage cannot be read or written.

    The caller's in-memory session is left untouched and may be retried.
    """

    pass


class StorageCorruptedError(StorageIOError):
    """Raised when the backing file exists but cannot be parsed.

    The file is never overwritten in this state.
    """

    pass


class ExternalServiceError(OrderflowError):
    """Raised by external collaborators (catalog, verification codes).

    The conversation machine turns it into an error render directive and
    leaves the session unchanged.
    """

    pass


class CatalogError(ExternalServiceError):
    """Raised by catalog clients when external entities cannot be fetched."""

    pass


class VerificationError(ExternalServiceError):
    """Raised when a verification code cannot be sent or checked."""

    pass
