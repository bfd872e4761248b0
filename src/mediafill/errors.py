"""Exception hierarchy for mediafill.

Resolver failures are never wrapped: whatever the resolver raises reaches
the caller of ``Filler.fill`` unchanged.
"""


class MediaFillError(Exception):
    """Base class for mediafill errors."""


class MappingError(MediaFillError):
    """A structural mapping plan could not be derived."""


class CyclicShapeError(MappingError):
    """A shape pair refers back to itself while its plan is being derived."""

    def __init__(self, path: list[tuple[type, type]]) -> None:
        self.path = path
        chain = " -> ".join(f"{src.__name__}=>{dst.__name__}" for src, dst in path)
        super().__init__(f"Cyclic shape detected: {chain}")


class MappingDepthError(MappingError):
    """Nested shapes exceed the configured maximum depth."""

    def __init__(self, max_depth: int, src_type: type, dst_type: type) -> None:
        self.max_depth = max_depth
        super().__init__(
            f"Mapping {src_type.__name__} to {dst_type.__name__} "
            f"exceeds maximum nesting depth of {max_depth}"
        )


class UnmappedFieldError(MappingError):
    """Strict mode: destination fields have no source counterpart."""

    def __init__(self, dst_type: type, fields: list[str]) -> None:
        self.dst_type = dst_type
        self.fields = fields
        super().__init__(
            f"Unmapped fields on {dst_type.__name__}: {', '.join(fields)}"
        )


class ResourceNotFoundError(MediaFillError):
    """The resource directory has no usable URL for a file ID."""

    def __init__(self, file_id: str, reason: str = "") -> None:
        self.file_id = file_id
        self.reason = reason
        message = f"No URL for file {file_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
