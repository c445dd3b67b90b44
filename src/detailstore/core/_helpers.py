"""Common helper functions for the persistence pipeline."""

import uuid
from datetime import UTC, datetime


def now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def generate_identity() -> str:
    """Generate an identity token (canonical 36-character UUID4 string)."""
    return str(uuid.uuid4())
