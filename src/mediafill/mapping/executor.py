"""Plan execution for the structural mapper.

Mapping is split in two passes. ``MappingPass`` is the first one: it builds
the destination tree, copies verbatim fields, and emits a binding for every
field that needs a resolved URL. The Filler then resolves all collected IDs
in one batch and distributes the result through those bindings, which is the
second pass.
"""

import logging
from collections.abc import Mapping
from typing import Any, get_origin, get_type_hints

from mediafill.core.binding import Binding, Multi, Ref, Rich, Single
from mediafill.core.richtext import RichTextRewriter
from mediafill.mapping.plan import (
    MAPPING_ORIGINS,
    SEQUENCE_ORIGINS,
    FieldAction,
    FieldKind,
    ScalarKind,
    TypeShapePlan,
    base_type,
    is_record,
    required_fields,
    unwrap_optional,
)

logger = logging.getLogger(__name__)


def read_field(source: Any, name: str) -> Any:
    """Read a field from a mapping or an object, None if absent."""
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def copy_value(value: Any) -> Any:
    """Shallow-copy containers so the destination never aliases the source."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, set):
        return set(value)
    return value


def zero_value(hint: Any) -> Any:
    """Zero value for a destination annotation."""
    hint, optional = unwrap_optional(hint)
    if optional:
        return None
    if is_record(hint):
        return new_record(hint)
    base = base_type(hint)
    origin = get_origin(base) or base
    if origin in SEQUENCE_ORIGINS:
        return () if origin is tuple else []
    if origin in MAPPING_ORIGINS:
        return {}
    if origin in (set, frozenset):
        return origin()
    if isinstance(base, type) and base in (str, int, float, bool, bytes):
        return base()
    return None


def new_record(record_type: type, required: tuple[tuple[str, Any], ...] | None = None) -> Any:
    """Allocate a record, passing zero values for fields without defaults."""
    if required is None:
        required = required_fields(record_type, get_type_hints(record_type))
    return record_type(**{name: zero_value(hint) for name, hint in required})


def coerce_scalar(value: Any, scalar: ScalarKind) -> Any:
    """Accept a schema-less value for a scalar kind, or None if it doesn't fit."""
    match scalar:
        case ScalarKind.STRING | ScalarKind.RICH_TEXT | ScalarKind.IDENTIFIER:
            return value if isinstance(value, str) else None
        case ScalarKind.BOOLEAN:
            return value if isinstance(value, bool) else None
        case ScalarKind.INTEGER:
            if isinstance(value, bool):
                return None
            if isinstance(value, int):
                return value
            if isinstance(value, float):
                return int(value)
            return None
        case ScalarKind.FLOAT:
            if isinstance(value, bool):
                return None
            if isinstance(value, (int, float)):
                return float(value)
            return None


class MappingPass:
    """First mapping pass over a batch of source values.

    All values mapped through one instance share its binding list, so the
    whole batch resolves with a single lookup.
    """

    def __init__(
        self,
        rewriter: RichTextRewriter | None = None,
        variant: str | None = None,
    ) -> None:
        """Initialize mapping pass.

        Args:
            rewriter: Rewriter for rich text fields (default marker pattern if None)
            variant: Variant name used for URL fields and rich text
        """
        self.rewriter = rewriter
        self.variant = variant
        self.bindings: list[Binding] = []

    def map(self, source: Any, plan: TypeShapePlan) -> Any:
        """Build a destination record from a source value.

        Args:
            source: Source object, mapping, or schema-less payload
            plan: Plan for the shape pair

        Returns:
            New destination record, or None if source is None
        """
        if source is None:
            return None

        target = new_record(plan.dst_type, plan.required)
        if plan.dynamic and not isinstance(source, Mapping):
            logger.debug(
                f"Expected a mapping for {plan.dst_type.__name__}, "
                f"got {type(source).__name__}"
            )
            return target

        for action in plan.actions:
            self._apply(action, source, target)
        return target

    def _apply(self, action: FieldAction, source: Any, target: Any) -> None:
        match action.kind:
            case FieldKind.LIFT_ID_TO_URL:
                binding = Single(Ref(source, action.source), Ref(target, action.target))
                self.bindings.append(binding.use_variant(self.variant) if self.variant else binding)

            case FieldKind.LIFT_IDS_TO_URLS:
                binding = Multi(Ref(source, action.source), Ref(target, action.target))
                self.bindings.append(binding.use_variant(self.variant) if self.variant else binding)

            case FieldKind.REWRITE_RICH_TEXT:
                value = read_field(source, action.source)
                if action.scalar is not None:
                    value = coerce_scalar(value, action.scalar)
                if not isinstance(value, str):
                    return
                setattr(target, action.target, value)
                ref = Ref(target, action.target)
                self.bindings.append(Rich(ref, ref, rewriter=self.rewriter, variant=self.variant))

            case FieldKind.COPY_VERBATIM:
                value = read_field(source, action.source)
                if action.scalar is not None:
                    value = coerce_scalar(value, action.scalar)
                if value is not None:
                    setattr(target, action.target, copy_value(value))

            case FieldKind.RECURSE_LIST:
                items = read_field(source, action.source)
                if action.elem_plan is None or items is None:
                    return
                if isinstance(items, (str, bytes, Mapping)):
                    return
                setattr(target, action.target, [self.map(item, action.elem_plan) for item in items])

            case FieldKind.RECURSE_MAP:
                items = read_field(source, action.source)
                if not isinstance(items, Mapping) or action.elem_plan is None:
                    return
                setattr(
                    target,
                    action.target,
                    {key: self.map(item, action.elem_plan) for key, item in items.items()},
                )

            case FieldKind.RECURSE_RECORD:
                value = read_field(source, action.source)
                if value is None or action.elem_plan is None:
                    # Non-optional records keep the zero record from allocation
                    return
                setattr(target, action.target, self.map(value, action.elem_plan))
