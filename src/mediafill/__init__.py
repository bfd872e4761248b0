"""Media reference resolution.

Resolves file IDs embedded in data structures into delivery URLs with a
single batch lookup per fill call.
"""

from .core.binding import Binding, Multi, Ref, Rich, Single
from .core.collector import IdentifierSet
from .core.filler import Filler
from .core.resource import ResourceInfo, Resolver
from .core.richtext import DEFAULT_PATTERN, RichTextRewriter, marker_pattern
from .core.types import URL, URLs, FileID, FileIDs, RichText, media_field
from .errors import (
    CyclicShapeError,
    MappingDepthError,
    MappingError,
    MediaFillError,
    ResourceNotFoundError,
    UnmappedFieldError,
)
from .mapping.registry import PlanRegistry

__all__ = [
    "DEFAULT_PATTERN",
    "URL",
    "URLs",
    "Binding",
    "CyclicShapeError",
    "FileID",
    "FileIDs",
    "Filler",
    "IdentifierSet",
    "MappingDepthError",
    "MappingError",
    "MediaFillError",
    "Multi",
    "PlanRegistry",
    "Ref",
    "ResourceInfo",
    "ResourceNotFoundError",
    "Resolver",
    "Rich",
    "RichText",
    "RichTextRewriter",
    "Single",
    "UnmappedFieldError",
    "marker_pattern",
    "media_field",
]
