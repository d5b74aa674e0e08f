"""One-time code verification collaborator (SMS codes)."""

import secrets
from abc import ABC, abstractmethod

from orderflow.errors import VerificationError


class VerificationClient(ABC):
    """Sends and checks one-time codes for a phone number."""

    @abstractmethod
    async def send_code(self, phone: str) -> None:
        """Send a new code to the phone."""
        pass

    @abstractmethod
    async def verify_code(self, phone: str, code: str) -> bool:
        """Check a code entered by the user."""
        pass


class InMemoryVerificationClient(VerificationClient):
    """Verification client for testing and development.

    Codes are generated locally instead of being sent; a fixed code can be
    configured for tests.
    """

    def __init__(self, fixed_code: str | None = None, length: int = 6) -> None:
        self._fixed_code = fixed_code
        self._length = length
        self._codes: dict[str, str] = {}
        self._available = True
        self.sent: list[str] = []

    def set_available(self, available: bool) -> None:
        """Simulate an outage of the SMS gateway (test utility)."""
        self._available = available

    def code_for(self, phone: str) -> str | None:
        """Last code sent to a phone (test utility)."""
        return self._codes.get(phone)

    async def send_code(self, phone: str) -> None:
        if not self._available:
            raise VerificationError("Verification service is unavailable")
        code = self._fixed_code or "".join(
            secrets.choice("0123456789") for _ in range(self._length)
        )
        self._codes[phone] = code
        self.sent.append(phone)

    async def verify_code(self, phone: str, code: str) -> bool:
        if not self._available:
            raise VerificationError("Verification service is unavailable")
        expected = self._codes.get(phone)
        return expected is not None and secrets.compare_digest(expected, code)
