"""Structured logging for the bot and the maintenance CLI.

Events are rendered as JSON lines (``format="json"``) or as coloured console
output, always on stderr so that CLI results on stdout stay machine readable.

Session state is full of customer data: phone numbers, delivery addresses,
verification codes and coordinates. The ``PIIRedactor`` processor blanks
values stored under sensitive keys and masks phone numbers and e-mail
addresses that leak into free text such as error messages.
"""

import logging
import re
import sys
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, cast

import structlog
from structlog.contextvars import bound_contextvars
from structlog.types import EventDict, WrappedLogger

REDACTED = "[REDACTED]"

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "bot_token",
    "api_key",
    "authorization",
    "otp",
    "otp_code",
    "code",
    "phone",
    "additional_phone",
    "phone_number",
    "address",
    "coordinates",
    "location",
    "latitude",
    "longitude",
    "card_number",
})

# Nine or more digits, optionally grouped by spaces, dashes or brackets
PHONE_PATTERN = re.compile(r"\+?\d(?:[\s\-()]*\d){8,}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


class PIIRedactor:
    """structlog processor that scrubs customer data from an event.

    Keys are matched case-insensitively against ``SENSITIVE_KEYS`` plus any
    ``extra_keys``. Nested mappings, lists and tuples are walked.
    """

    def __init__(self, extra_keys: Iterable[str] = ()) -> None:
        self._keys = SENSITIVE_KEYS | {key.lower() for key in extra_keys}

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._scrub_mapping(event_dict))

    def _scrub_mapping(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return {
            key: REDACTED if key.lower() in self._keys else self._scrub(value)
            for key, value in data.items()
        }

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, str):
            return PHONE_PATTERN.sub("[PHONE]", EMAIL_PATTERN.sub("[EMAIL]", value))
        if isinstance(value, Mapping):
            return self._scrub_mapping(value)
        if isinstance(value, list | tuple):
            return type(value)(self._scrub(item) for item in value)
        return value


def resolve_level(level: str) -> int:
    """Numeric level for a name such as ``"debug"``; unknown names mean INFO."""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_pii: bool = True,
    redact_keys: Iterable[str] = (),
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum log level name
        format: "json" for log shipping, "console" for local development
        redact_pii: Whether to scrub customer data before rendering
        redact_keys: Keys to scrub on top of SENSITIVE_KEYS
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if redact_pii:
        processors.append(PIIRedactor(extra_keys=redact_keys))

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextmanager
def session_log_context(user_id: int, chat_id: int) -> Iterator[None]:
    """Tag every event logged inside the block with the session key."""
    with bound_contextvars(user_id=user_id, chat_id=chat_id):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
