# src/detailstore/core/identity.py
"""Identity token recognition.

Records on tables with a detail column carry a ``uuid`` attribute: a
canonical 36-character UUID string stored inside the detail JSON. A lookup
key of exactly that length is routed to the detail column instead of the
primary key. The check is on length only; the string's contents are not
validated.
"""

from __future__ import annotations

from typing import Any

# Attribute holding the identity token.
IDENTITY_ATTRIBUTE = "uuid"

# Length of a canonical UUID string (8-4-4-4-12 hex digits plus hyphens).
IDENTITY_TOKEN_LENGTH = 36


def is_identity_token(value: Any) -> bool:
    """Check whether a lookup key should be treated as an identity token.

    Args:
        value: Lookup key passed to find()

    Returns:
        True for strings of exactly IDENTITY_TOKEN_LENGTH characters
    """
    return isinstance(value, str) and len(value) == IDENTITY_TOKEN_LENGTH
