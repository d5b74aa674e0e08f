"""Session validation rules.

``validate_session`` reports problems instead of raising, so that readers
can substitute a default session and writers can raise
SessionValidationError with the full list.
"""

import math
from typing import Any

from pydantic import ValidationError

from orderflow.sessions.models import Language, SceneName, Session


def validate_session(session: Session, max_history: int | None = None) -> list[str]:
    """Return the list of rule violations for a session (empty when valid)."""
    errors: list[str] = []

    if not isinstance(session.language, Language):
        errors.append("Invalid or missing language")

    if session.registered and not session.phone:
        errors.append("Registered user must have valid phone number")

    if session.selected_city is not None and session.selected_city <= 0:
        errors.append("Invalid selected_city value")

    if session.selected_branch is not None and session.selected_branch <= 0:
        errors.append("Invalid selected_branch value")

    seen: set[int] = set()
    for index, item in enumerate(session.cart.items):
        if item.quantity < 1:
            errors.append(f"Invalid cart item quantity at index {index}")
        if item.price < 0 or not math.isfinite(item.price):
            errors.append(f"Invalid cart item price at index {index}")
        if item.id in seen:
            errors.append(f"Duplicate cart item id {item.id}")
        seen.add(item.id)

    if max_history is not None and len(session.scene.history) > max_history:
        errors.append("Scene history exceeds its bound")

    pending = session.scene.pending
    if pending is not None and not isinstance(pending.owner, SceneName):
        errors.append("Pending input has an unknown owner scene")

    return errors


def parse_session(
    data: Any, max_history: int | None = None
) -> tuple[Session | None, list[str]]:
    """Parse a raw stored record into a Session.

    Returns the session (or None) and the validation errors. Structural
    errors from pydantic are reported with their field location.
    """
    if not isinstance(data, dict):
        return None, ["Session record is not an object"]

    try:
        session = Session.model_validate(data)
    except ValidationError as e:
        return None, format_validation_errors(e)

    return session, validate_session(session, max_history)


def format_validation_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as 'location: message' strings."""
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'session'}: {err['msg']}"
        for err in error.errors()
    ]
