"""Tests for the first mapping pass."""

from dataclasses import dataclass, field
from typing import get_type_hints

from mediafill.mapping.executor import MappingPass, new_record
from mediafill.mapping.plan import FieldAction, FieldKind, ScalarKind, TypeShapePlan, required_fields


@dataclass
class Inner:
    name: str
    count: int


@dataclass
class Outer:
    inner: Inner
    tags: list[str]
    score: float
    note: str = "keep"
    items: list[Inner] = field(default_factory=list)


REQUIRED = required_fields(Outer, get_type_hints(Outer))


class TestNewRecord:
    """Tests for new_record()."""

    def test__required_fields__get_zero_values(self) -> None:
        """Allocate nested records and zero values for fields without defaults."""
        record = new_record(Outer)

        assert record == Outer(inner=Inner(name="", count=0), tags=[], score=0.0)
        assert record.note == "keep"


class TestMappingPass:
    """Tests for MappingPass.map()."""

    def test__float_scalar__widens_int(self) -> None:
        """Convert int values copied into float fields."""
        plan = TypeShapePlan(
            src_type=dict,
            dst_type=Outer,
            actions=(
                FieldAction(
                    kind=FieldKind.COPY_VERBATIM,
                    target="score",
                    source="score",
                    scalar=ScalarKind.FLOAT,
                ),
            ),
            required=REQUIRED,
        )

        result = MappingPass().map({"score": 3}, plan)

        assert result.score == 3.0
        assert isinstance(result.score, float)

    def test__recurse_without_element_plan__keeps_zero_value(self) -> None:
        """Leave nested fields alone when an action carries no element plan."""
        plan = TypeShapePlan(
            src_type=dict,
            dst_type=Outer,
            actions=(
                FieldAction(kind=FieldKind.RECURSE_LIST, target="items", source="items"),
                FieldAction(kind=FieldKind.RECURSE_MAP, target="tags", source="tags"),
                FieldAction(kind=FieldKind.RECURSE_RECORD, target="inner", source="inner"),
            ),
            required=REQUIRED,
        )
        source = {"items": [{"name": "a"}], "tags": {"k": "v"}, "inner": {"name": "b"}}

        result = MappingPass().map(source, plan)

        assert result.items == []
        assert result.tags == []
        assert result.inner == Inner(name="", count=0)
