"""
Chirp Backend — Identifier Helpers
====================================

What:  Parsing of client-supplied IDs and set-style edits of the
       denormalized ID lists stored on users and posts.
How:   IDs are UUIDs. Lists store them as canonical strings, so every
       add/remove goes through here to keep the format and the
       no-duplicates rule in one place.
"""

import uuid
from typing import List, Union

from chirp.exceptions import ValidationError

IdLike = Union[str, uuid.UUID]


def parse_id(value: IdLike, label: str) -> uuid.UUID:
    """
    Parse a path/body ID into a UUID.

    Raises:
        ValidationError: "Invalid <label> ID" for anything that is not a UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(message=f"Invalid {label} ID", field=f"{label}_id")


def id_in(ids: List[str], value: IdLike) -> bool:
    return str(value) in (ids or [])


def with_id(ids: List[str], value: IdLike) -> List[str]:
    """Set-add: returns a new list with value appended once."""
    current = list(ids or [])
    key = str(value)
    if key not in current:
        current.append(key)
    return current


def without_id(ids: List[str], value: IdLike) -> List[str]:
    """Set-remove: returns a new list with every occurrence of value dropped."""
    key = str(value)
    return [item for item in (ids or []) if item != key]


def as_uuids(ids: List[str]) -> List[uuid.UUID]:
    """Converts a stored ID list for use in IN (...) queries, skipping junk."""
    result = []
    for item in ids or []:
        try:
            result.append(uuid.UUID(str(item)))
        except ValueError:
            continue
    return result
