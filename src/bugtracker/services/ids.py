"""Identifier parsing shared by routes and services."""

import uuid

from bugtracker.errors import ValidationError


def parse_id(value, label: str) -> uuid.UUID:
    """Parse a client-supplied id; malformed ids are a 400, not a 404."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} ID format")
