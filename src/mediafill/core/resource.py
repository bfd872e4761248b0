"""Resolved resource records and the resolver contract."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import NotRequired, Protocol, TypedDict


class ResourceInfoDict(TypedDict):
    """Per-file entry returned by the resource directory."""

    url: str
    success: bool
    variant_urls: NotRequired[dict[str, str] | None]
    error: NotRequired[str | None]


@dataclass(frozen=True)
class ResourceInfo:
    """Delivery information for one file ID."""

    url: str = ""
    variants: dict[str, str] = field(default_factory=dict)
    success: bool = False
    error: str = ""

    def variant(self, name: str) -> str:
        """Return the URL of a named variant, falling back to the primary URL.

        Args:
            name: Variant name (e.g., "thumbnail_200x200")

        Returns:
            Variant URL if present, otherwise ``url``
        """
        return self.variants.get(name, self.url)

    @classmethod
    def from_dict(cls, data: ResourceInfoDict) -> "ResourceInfo":
        """Build from a resource directory entry."""
        return cls(
            url=data.get("url") or "",
            variants=dict(data.get("variant_urls") or {}),
            success=bool(data.get("success", False)),
            error=data.get("error") or "",
        )


class Resolver(Protocol):
    """Batch lookup of file IDs.

    Implementations receive already de-duplicated IDs. IDs missing from the
    returned mapping are treated as unresolved, never as an error.
    """

    async def resolve(self, ids: list[str]) -> Mapping[str, ResourceInfo]: ...
