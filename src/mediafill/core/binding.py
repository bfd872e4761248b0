"""Field bindings between file IDs and resolved values.

A binding declares where file IDs live and where resolved values go. There
are exactly three kinds:

- ``Single``: one ID field fills one target field
- ``Multi``: an ID list fills a result list of the same length
- ``Rich``: markup with embedded ID markers is rewritten into a target field

Bindings hold references into caller-owned objects and only live for the
duration of one fill call.
"""

import logging
from collections.abc import Callable, Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from typing import Any

from mediafill.core.resource import ResourceInfo
from mediafill.core.richtext import RichTextRewriter

logger = logging.getLogger(__name__)

DEFAULT_REWRITER = RichTextRewriter()


@dataclass(frozen=True)
class Ref:
    """Reference to an attribute, mapping key, or list slot of an object."""

    owner: Any
    key: Any

    def get(self) -> Any:
        """Read the referenced value, or None if it doesn't exist."""
        if isinstance(self.owner, (Mapping, MutableSequence)):
            try:
                return self.owner[self.key]
            except (KeyError, IndexError):
                return None
        return getattr(self.owner, self.key, None)

    def set(self, value: Any) -> None:
        """Write the referenced value."""
        if isinstance(self.owner, (MutableMapping, MutableSequence)):
            self.owner[self.key] = value
        else:
            setattr(self.owner, self.key, value)


def _project(
    info: ResourceInfo,
    transform: Callable[[ResourceInfo], Any] | None,
    variant: str | None,
) -> Any:
    if transform is not None:
        return transform(info)
    if variant:
        return info.variant(variant)
    return info.url


@dataclass
class Single:
    """One file ID filling one target.

    Usage:
        Single(Ref(product, "cover"), Ref(product, "cover_url"))

    Args:
        source: Reference to the file ID
        target: Reference receiving the resolved value
        transform: Converts a ResourceInfo into the target value;
                   defaults to the (variant) URL
        variant: Variant name used when no transform is given
    """

    source: Ref
    target: Ref
    transform: Callable[[ResourceInfo], Any] | None = None
    variant: str | None = None

    def use_variant(self, name: str) -> "Single":
        """Fill with a variant URL instead of the primary URL."""
        self.variant = name
        return self


@dataclass
class Multi:
    """A list of file IDs filling a result list of the same length.

    Empty IDs and unresolved IDs leave ``zero`` at their position.

    Args:
        source: Reference to the file ID list
        targets: Reference receiving the result list
        transform: Converts a ResourceInfo into a result item
        variant: Variant name used when no transform is given
        zero: Value for positions that have no resolved resource
    """

    source: Ref
    targets: Ref
    transform: Callable[[ResourceInfo], Any] | None = None
    variant: str | None = None
    zero: Any = ""

    def use_variant(self, name: str) -> "Multi":
        """Fill with variant URLs instead of primary URLs."""
        self.variant = name
        return self


@dataclass
class Rich:
    """Markup whose embedded file ID markers get fresh URLs.

    ``raw`` and ``rendered`` may reference the same location for an in-place
    rewrite.
    """

    raw: Ref
    rendered: Ref
    rewriter: RichTextRewriter | None = None
    variant: str | None = None

    def with_pattern(self, pattern: Any) -> "Rich":
        """Use a custom marker pattern (file ID in group 1)."""
        self.rewriter = RichTextRewriter(pattern)
        return self

    def use_variant(self, name: str) -> "Rich":
        """Rewrite with a variant URL instead of the primary URL."""
        self.variant = name
        return self

    @property
    def effective_rewriter(self) -> RichTextRewriter:
        return self.rewriter or DEFAULT_REWRITER


Binding = Single | Multi | Rich


def collect_ids(binding: Binding) -> list[str]:
    """Return the non-empty file IDs a binding refers to.

    Raises:
        TypeError: If binding is not one of Single, Multi, Rich
    """
    match binding:
        case Single(source=source):
            file_id = source.get()
            return [file_id] if _is_id(file_id) else []
        case Multi(source=source):
            return [file_id for file_id in _id_list(source.get()) if _is_id(file_id)]
        case Rich(raw=raw):
            text = raw.get()
            return binding.effective_rewriter.collect_ids(text) if isinstance(text, str) else []
        case _:
            raise TypeError(f"Unsupported binding: {type(binding).__name__}")


def fill_binding(binding: Binding, resources: Mapping[str, ResourceInfo]) -> None:
    """Write resolved values through a binding.

    Unresolved or failed IDs leave their destination untouched.

    Raises:
        TypeError: If binding is not one of Single, Multi, Rich
    """
    match binding:
        case Single(source=source, target=target):
            file_id = source.get()
            if not _is_id(file_id):
                return
            info = resources.get(file_id)
            if info is None or not info.success:
                logger.debug(f"File {file_id} unresolved, keeping target value")
                return
            target.set(_project(info, binding.transform, binding.variant))

        case Multi(source=source, targets=targets):
            file_ids = _id_list(source.get())
            if not file_ids:
                return
            results = [binding.zero] * len(file_ids)
            for index, file_id in enumerate(file_ids):
                if not _is_id(file_id):
                    continue
                info = resources.get(file_id)
                if info is not None and info.success:
                    results[index] = _project(info, binding.transform, binding.variant)
            targets.set(results)

        case Rich(raw=raw, rendered=rendered):
            text = raw.get()
            if not text or not isinstance(text, str):
                return
            rendered.set(
                binding.effective_rewriter.rewrite(text, resources, binding.variant)
            )

        case _:
            raise TypeError(f"Unsupported binding: {type(binding).__name__}")


def _is_id(value: Any) -> bool:
    """Only non-empty strings are file IDs; anything else is skipped."""
    return isinstance(value, str) and bool(value)


def _id_list(value: Any) -> list[Any]:
    if value is None or isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return []
    return list(value)
