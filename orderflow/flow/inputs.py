"""Normalization and validation of typed user input."""

import re

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MIN_ADDRESS_LENGTH = 5
MAX_QUANTITY = 99

_NOT_PHONE_CHARS = re.compile(r"[^\d+]")
_NOT_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str) -> str:
    """Strip everything but digits and '+', adding the '+' shared contacts omit."""
    cleaned = _NOT_PHONE_CHARS.sub("", raw)
    if cleaned and not cleaned.startswith("+"):
        cleaned = f"+{cleaned}"
    return cleaned


def parse_phone(raw: str, pattern: str) -> str | None:
    """Normalized phone if it matches the accepted format, else None."""
    phone = normalize_phone(raw)
    return phone if re.fullmatch(pattern, phone) else None


def parse_name(raw: str) -> str | None:
    name = " ".join(raw.split())
    if MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return name
    return None


def parse_address(raw: str) -> str | None:
    address = raw.strip()
    return address if len(address) >= MIN_ADDRESS_LENGTH else None


def parse_code(raw: str, length: int) -> str | None:
    """Digits of a one-time code, None unless exactly ``length`` digits."""
    code = _NOT_DIGITS.sub("", raw)
    return code if len(code) == length else None


def parse_quantity(raw: str) -> int | None:
    value = raw.strip()
    if not value.isdigit():
        return None
    quantity = int(value)
    return quantity if 1 <= quantity <= MAX_QUANTITY else None
