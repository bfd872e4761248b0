"""Identifier collection for a single fill pass."""

from collections.abc import Iterable, Iterator


class IdentifierSet:
    """De-duplicated set of non-empty file IDs.

    One instance lives for exactly one fill call.
    """

    def __init__(self, ids: Iterable[str | None] = ()) -> None:
        self._ids: set[str] = set()
        self.update(ids)

    def add(self, file_id: str | None) -> None:
        """Add an ID, ignoring empty and non-string values."""
        if isinstance(file_id, str) and file_id:
            self._ids.add(file_id)

    def update(self, ids: Iterable[str | None]) -> None:
        """Add several IDs, ignoring empty and non-string values."""
        for file_id in ids:
            self.add(file_id)

    def to_list(self) -> list[str]:
        """Return the IDs in sorted order."""
        return sorted(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)
