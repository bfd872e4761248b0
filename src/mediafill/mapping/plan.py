"""Mapping plans derived from a pair of type shapes.

A plan lists, per destination field, what to do with the source value:
copy it, resolve an ID into a URL, rewrite rich text, or recurse into a
nested list, map, or record. Plans are derived once per shape pair and
never change afterwards.

Shapes are read from annotations. The destination must be a dataclass; the
source may be a dataclass, a TypedDict, or any annotated class. A schema-less
source (``Any``, ``object``, ``dict[str, Any]``) gets a dynamic plan that
matches fields by external name and fills only a fixed set of scalar kinds.
"""

import dataclasses
import logging
from collections.abc import Callable, Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from types import NoneType, UnionType
from typing import Any, NewType, Union, get_args, get_origin, get_type_hints
from uuid import UUID

from mediafill.core.types import MEDIA_TAG, NAME_TAG, URL, URLs, FileID, FileIDs, RichText
from mediafill.errors import MappingError

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = (str, int, float, bool, bytes, datetime, date, time, timedelta, Decimal, UUID, Enum)
SEQUENCE_ORIGINS = (list, tuple, Sequence, MutableSequence)
MAPPING_ORIGINS = (dict, Mapping, MutableMapping)
URL_SUFFIXES = ("_urls", "_url")


class FieldKind(Enum):
    """What a plan does with one destination field."""

    COPY_VERBATIM = "copy_verbatim"
    LIFT_ID_TO_URL = "lift_id_to_url"
    LIFT_IDS_TO_URLS = "lift_ids_to_urls"
    REWRITE_RICH_TEXT = "rewrite_rich_text"
    RECURSE_LIST = "recurse_list"
    RECURSE_MAP = "recurse_map"
    RECURSE_RECORD = "recurse_record"


class ScalarKind(Enum):
    """Destination kinds filled from schema-less payloads."""

    STRING = "string"
    RICH_TEXT = "rich_text"
    IDENTIFIER = "identifier"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldAction:
    """One step of a plan.

    Attributes:
        kind: What to do
        target: Destination field name
        source: Source field name (the ID field for URL kinds, the external
                key in dynamic plans)
        elem_plan: Plan for nested elements of RECURSE_* kinds
        optional: Whether the destination slot accepts None
        scalar: Scalar kind values are coerced to before copying (every
                scalar field of a dynamic plan, int-to-float copies otherwise)
    """

    kind: FieldKind
    target: str
    source: str
    elem_plan: "TypeShapePlan | None" = None
    optional: bool = False
    scalar: ScalarKind | None = None


@dataclass(frozen=True)
class TypeShapePlan:
    """Ordered field actions for a (source, destination) shape pair.

    Attributes:
        src_type: Source shape (``dict`` for dynamic plans)
        dst_type: Destination dataclass
        actions: Field actions in destination field order
        required: (name, annotation) of destination fields without defaults,
                  used to allocate records with zero values
        unmapped: Destination fields with no source counterpart
        dynamic: Whether fields are read from a schema-less payload
    """

    src_type: Any
    dst_type: type
    actions: tuple[FieldAction, ...]
    required: tuple[tuple[str, Any], ...] = ()
    unmapped: tuple[str, ...] = ()
    dynamic: bool = False


# Shape helpers


def unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into (X, True); anything else into (hint, False)."""
    if get_origin(hint) in (Union, UnionType):
        args = [arg for arg in get_args(hint) if arg is not NoneType]
        if len(args) == 1:
            return args[0], True
    return hint, False


def base_type(hint: Any) -> Any:
    """Follow NewType chains down to the underlying type."""
    while isinstance(hint, NewType):
        hint = hint.__supertype__
    return hint


def is_record(hint: Any) -> bool:
    return isinstance(hint, type) and dataclasses.is_dataclass(hint)


def is_primitive(hint: Any) -> bool:
    hint = base_type(unwrap_optional(hint)[0])
    return isinstance(hint, type) and issubclass(hint, PRIMITIVE_TYPES)


def is_schemaless(hint: Any) -> bool:
    """Whether a source shape carries no static field information."""
    hint = unwrap_optional(hint)[0]
    if hint is Any or hint is object or hint in MAPPING_ORIGINS:
        return True
    if get_origin(hint) in MAPPING_ORIGINS:
        args = get_args(hint)
        return len(args) == 2 and args[1] in (Any, object)
    return False


def has_shape(hint: Any) -> bool:
    """Whether a source shape can be walked field by field."""
    if is_schemaless(hint):
        return True
    return isinstance(hint, type) and not is_primitive(hint) and bool(field_hints(hint))


def field_hints(shape: Any) -> dict[str, Any]:
    """Resolved annotations of a class, or an empty dict for non-classes."""
    if not isinstance(shape, type):
        return {}
    return get_type_hints(shape)


def element_type(hint: Any) -> Any:
    """Element type of a sequence annotation, Any if unparameterized."""
    args = get_args(base_type(hint))
    return args[0] if args else Any


def value_type(hint: Any) -> Any:
    """Value type of a mapping annotation, Any if unparameterized."""
    args = get_args(base_type(hint))
    return args[1] if len(args) == 2 else Any


def container_origin(hint: Any) -> Any:
    hint = base_type(hint)
    return get_origin(hint) or hint


def is_convertible(src_hint: Any, dst_hint: Any, *, widen: bool = True) -> bool:
    """Whether a source value can be copied into a destination field as-is.

    Generic arguments are compared pairwise. ``widen`` allows int into float
    at the top level only, since elements of copied containers are not
    converted.
    """
    if dst_hint in (Any, object) or src_hint in (Any, object):
        return True
    src, dst = base_type(src_hint), base_type(dst_hint)
    if src == dst:
        return True
    if get_origin(src) is not None or get_origin(dst) is not None:
        if container_origin(src) is not container_origin(dst):
            return False
        src_args, dst_args = get_args(src), get_args(dst)
        if not src_args or not dst_args:
            return True
        return len(src_args) == len(dst_args) and all(
            is_convertible(s, d, widen=False) for s, d in zip(src_args, dst_args)
        )
    if isinstance(src, type) and isinstance(dst, type):
        return issubclass(src, dst) or (widen and src is int and dst is float)
    return False


def is_string(hint: Any) -> bool:
    """Whether a source annotation holds a string, such as a file ID."""
    hint = base_type(unwrap_optional(hint)[0])
    return hint in (Any, object) or (isinstance(hint, type) and issubclass(hint, str))


def is_string_sequence(hint: Any) -> bool:
    """Whether a source annotation holds a sequence of strings."""
    hint = base_type(unwrap_optional(hint)[0])
    if hint in (Any, object):
        return True
    return container_origin(hint) in SEQUENCE_ORIGINS and is_string(element_type(hint))


def url_source_name(field_name: str) -> str:
    """Derive the ID field name for a URL field (``cover_url`` -> ``cover``)."""
    for suffix in URL_SUFFIXES:
        if field_name.endswith(suffix) and len(field_name) > len(suffix):
            return field_name[: -len(suffix)]
    return field_name


def required_fields(record_type: type, hints: dict[str, Any]) -> tuple[tuple[str, Any], ...]:
    """Destination fields the constructor needs a value for."""
    return tuple(
        (f.name, hints.get(f.name, Any))
        for f in dataclasses.fields(record_type)
        if f.init
        and f.default is dataclasses.MISSING
        and f.default_factory is dataclasses.MISSING
    )


# Plan derivation

PlanLookup = Callable[[Any, type], TypeShapePlan]


class PlanBuilder:
    """Derives plans for one shape pair.

    Nested plans are requested through ``lookup`` so they are cached and
    cycle-checked by the owning registry.
    """

    def __init__(self, lookup: PlanLookup) -> None:
        self._lookup = lookup

    def build(self, src_type: Any, dst_type: type) -> TypeShapePlan:
        """Derive the plan for a shape pair.

        Args:
            src_type: Source shape
            dst_type: Destination dataclass

        Returns:
            Derived plan

        Raises:
            MappingError: If the destination is not a dataclass
        """
        if not is_record(dst_type):
            raise MappingError(f"Destination type {dst_type!r} is not a dataclass")

        if is_schemaless(src_type):
            return self.build_dynamic(dst_type)

        src_fields = field_hints(src_type)
        dst_hints = get_type_hints(dst_type)
        actions: list[FieldAction] = []
        unmapped: list[str] = []

        for dst_field in dataclasses.fields(dst_type):
            action = self._derive_field(dst_field, dst_hints[dst_field.name], src_fields)
            if action is None:
                unmapped.append(dst_field.name)
            else:
                actions.append(action)

        logger.debug(
            f"Built plan {_shape_name(src_type)} -> {dst_type.__name__}: "
            f"{len(actions)} actions, {len(unmapped)} unmapped"
        )
        return TypeShapePlan(
            src_type=src_type,
            dst_type=dst_type,
            actions=tuple(actions),
            required=required_fields(dst_type, dst_hints),
            unmapped=tuple(unmapped),
        )

    def _derive_field(
        self,
        dst_field: dataclasses.Field[Any],
        dst_hint: Any,
        src_fields: dict[str, Any],
    ) -> FieldAction | None:
        """Derive the action for one destination field, or None if unmapped."""
        name = dst_field.name
        hint, optional = unwrap_optional(dst_hint)

        if hint is URL or hint is URLs:
            id_field = dst_field.metadata.get(MEDIA_TAG) or url_source_name(name)
            if id_field not in src_fields:
                return None
            holds_ids = is_string if hint is URL else is_string_sequence
            if not holds_ids(src_fields[id_field]):
                return None
            kind = FieldKind.LIFT_ID_TO_URL if hint is URL else FieldKind.LIFT_IDS_TO_URLS
            return FieldAction(kind=kind, target=name, source=id_field)

        if name not in src_fields:
            return None
        src_hint = unwrap_optional(src_fields[name])[0]

        if hint is RichText:
            return FieldAction(kind=FieldKind.REWRITE_RICH_TEXT, target=name, source=name)

        if hint is FileID or hint is FileIDs:
            return FieldAction(kind=FieldKind.COPY_VERBATIM, target=name, source=name)

        origin = container_origin(hint)

        if origin in SEQUENCE_ORIGINS:
            dst_elem, elem_optional = unwrap_optional(element_type(hint))
            if is_record(dst_elem):
                src_elem = Any if is_schemaless(src_hint) else element_type(src_hint)
                if container_origin(src_hint) not in SEQUENCE_ORIGINS and not is_schemaless(src_hint):
                    return None
                return self._recurse(FieldKind.RECURSE_LIST, name, src_elem, dst_elem, elem_optional)

        elif origin in MAPPING_ORIGINS:
            dst_value, value_optional = unwrap_optional(value_type(hint))
            if is_record(dst_value):
                src_value = Any if is_schemaless(src_hint) else value_type(src_hint)
                if container_origin(src_hint) not in MAPPING_ORIGINS and not is_schemaless(src_hint):
                    return None
                return self._recurse(FieldKind.RECURSE_MAP, name, src_value, dst_value, value_optional)

        elif is_record(hint):
            return self._recurse(FieldKind.RECURSE_RECORD, name, src_hint, hint, optional)

        if not is_convertible(src_hint, hint):
            return None
        # int sources are widened when copied into float fields
        widen = base_type(src_hint) is int and base_type(hint) is float
        return FieldAction(
            kind=FieldKind.COPY_VERBATIM,
            target=name,
            source=name,
            scalar=ScalarKind.FLOAT if widen else None,
        )

    def _recurse(
        self,
        kind: FieldKind,
        name: str,
        src_elem: Any,
        dst_elem: type,
        optional: bool,
    ) -> FieldAction | None:
        src_elem = unwrap_optional(src_elem)[0]
        if not has_shape(src_elem):
            return None
        return FieldAction(
            kind=kind,
            target=name,
            source=name,
            elem_plan=self._lookup(src_elem, dst_elem),
            optional=optional,
        )

    def build_dynamic(self, dst_type: type) -> TypeShapePlan:
        """Derive the plan for filling a record from a schema-less payload.

        Fields are matched by their ``json`` tag, falling back to the field
        name. Only string, rich text, identifier, integer, float and boolean
        fields are filled.
        """
        if not is_record(dst_type):
            raise MappingError(f"Destination type {dst_type!r} is not a dataclass")

        dst_hints = get_type_hints(dst_type)
        actions: list[FieldAction] = []
        unmapped: list[str] = []

        for dst_field in dataclasses.fields(dst_type):
            scalar = _scalar_kind(dst_hints[dst_field.name])
            if scalar is None:
                unmapped.append(dst_field.name)
                continue
            kind = FieldKind.REWRITE_RICH_TEXT if scalar is ScalarKind.RICH_TEXT else FieldKind.COPY_VERBATIM
            actions.append(
                FieldAction(
                    kind=kind,
                    target=dst_field.name,
                    source=dst_field.metadata.get(NAME_TAG) or dst_field.name,
                    scalar=scalar,
                )
            )

        logger.debug(
            f"Built dynamic plan for {dst_type.__name__}: "
            f"{len(actions)} actions, {len(unmapped)} unmapped"
        )
        return TypeShapePlan(
            src_type=dict,
            dst_type=dst_type,
            actions=tuple(actions),
            required=required_fields(dst_type, dst_hints),
            unmapped=tuple(unmapped),
            dynamic=True,
        )


def _scalar_kind(hint: Any) -> ScalarKind | None:
    hint = unwrap_optional(hint)[0]
    if hint is RichText:
        return ScalarKind.RICH_TEXT
    if hint is FileID:
        return ScalarKind.IDENTIFIER
    if hint is URL:
        return None
    base = base_type(hint)
    if not isinstance(base, type):
        return None
    if issubclass(base, bool):
        return ScalarKind.BOOLEAN
    if issubclass(base, str):
        return ScalarKind.STRING
    if issubclass(base, int):
        return ScalarKind.INTEGER
    if issubclass(base, float):
        return ScalarKind.FLOAT
    return None


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", repr(shape))
