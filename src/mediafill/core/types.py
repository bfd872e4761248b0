"""Marker types for media-bearing fields.

Destination records declare what a field holds by annotating it with one of
these types. The structural mapper reads the annotations to decide whether a
field is copied, resolved from an ID field, or rewritten as rich text.
"""

from dataclasses import MISSING, Field, field
from typing import Any, NewType

# Raw file ID, copied as-is
FileID = NewType("FileID", str)
FileIDs = NewType("FileIDs", list[str])

# Delivery URL resolved from a sibling ID field
URL = NewType("URL", str)
URLs = NewType("URLs", list[str])

# Markup with embedded ID markers whose URL attribute gets rewritten
RichText = NewType("RichText", str)

# Field metadata key naming the source field that holds the ID(s)
MEDIA_TAG = "media"

# Field metadata key naming the external key in schema-less payloads
NAME_TAG = "json"


def media_field(
    source: str | None = None,
    *,
    name: str | None = None,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Declare a dataclass field with mapping tags.

    Args:
        source: Source field holding the file ID(s) for URL/URLs fields
        name: External key used when reading schema-less payloads
        default: Field default
        default_factory: Field default factory

    Returns:
        A dataclasses.Field carrying the tags in its metadata
    """
    metadata: dict[str, str] = {}
    if source is not None:
        metadata[MEDIA_TAG] = source
    if name is not None:
        metadata[NAME_TAG] = name
    result: Field[Any] = field(
        default=default,
        default_factory=default_factory,
        metadata=metadata,
    )
    return result
