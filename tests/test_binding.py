"""Tests for bindings and identifier collection."""

from dataclasses import dataclass, field

import pytest
from mediafill.core.binding import Multi, Ref, Rich, Single, collect_ids, fill_binding
from mediafill.core.collector import IdentifierSet

from tests.fakes import failed, ok


@dataclass
class Product:
    cover: str = ""
    cover_url: str = ""
    gallery: list[str] = field(default_factory=list)
    gallery_urls: list[str] = field(default_factory=list)
    detail: str = ""
    detail_html: str = ""


class TestRef:
    """Tests for Ref."""

    def test__attribute__reads_and_writes(self) -> None:
        """Read and write an object attribute."""
        product = Product(cover="c1")
        ref = Ref(product, "cover")

        ref.set("c2")

        assert ref.get() == "c2"
        assert product.cover == "c2"

    def test__mapping_key__reads_and_writes(self) -> None:
        """Read and write a mapping key."""
        data = {"cover": "c1"}
        ref = Ref(data, "cover")

        ref.set("c2")

        assert data == {"cover": "c2"}

    def test__list_index__reads_and_writes(self) -> None:
        """Read and write a list slot."""
        items = ["a", "b"]
        ref = Ref(items, 1)

        ref.set("c")

        assert ref.get() == "c"
        assert items == ["a", "c"]

    def test__missing_key__returns_none(self) -> None:
        """Return None for absent keys and attributes."""
        assert Ref({}, "cover").get() is None
        assert Ref(Product(), "missing").get() is None


class TestIdentifierSet:
    """Tests for IdentifierSet."""

    def test__duplicates_and_empties__are_dropped(self) -> None:
        """Keep each non-empty ID once."""
        ids = IdentifierSet(["a", "", "b", "a", None])

        assert len(ids) == 2
        assert "a" in ids
        assert "" not in ids
        assert ids.to_list() == ["a", "b"]

    def test__add__ignores_empty(self) -> None:
        """Ignore empty values passed to add()."""
        ids = IdentifierSet()

        ids.add("")
        ids.add(None)

        assert len(ids) == 0

    def test__add__ignores_non_strings(self) -> None:
        """Ignore values that are not strings, including unhashable ones."""
        ids = IdentifierSet()

        ids.add(7)  # type: ignore[arg-type]
        ids.add(["a"])  # type: ignore[arg-type]

        assert len(ids) == 0


class TestCollectIds:
    """Tests for collect_ids()."""

    def test__single__returns_id(self) -> None:
        """Return the single ID."""
        product = Product(cover="c1")

        assert collect_ids(Single(Ref(product, "cover"), Ref(product, "cover_url"))) == ["c1"]

    def test__single_empty__returns_nothing(self) -> None:
        """Never collect an empty ID."""
        product = Product()

        assert collect_ids(Single(Ref(product, "cover"), Ref(product, "cover_url"))) == []

    def test__multi__skips_empty_keeps_duplicates(self) -> None:
        """Return non-empty IDs; dedup happens in the filler."""
        product = Product(gallery=["a", "", "b", "a"])

        binding = Multi(Ref(product, "gallery"), Ref(product, "gallery_urls"))

        assert collect_ids(binding) == ["a", "b", "a"]

    def test__non_string_ids__are_ignored(self) -> None:
        """Never collect values that are not strings."""
        source = {"cover": 7, "gallery": ["a", 3, {"k": "v"}], "detail": 5}

        assert collect_ids(Single(Ref(source, "cover"), Ref(source, "cover_url"))) == []
        assert collect_ids(Multi(Ref(source, "gallery"), Ref(source, "gallery_urls"))) == ["a"]
        assert collect_ids(Rich(Ref(source, "detail"), Ref(source, "detail_html"))) == []

    def test__multi_string_source__returns_nothing(self) -> None:
        """Treat a bare string as no ID list rather than a list of characters."""
        source = {"gallery": "abc"}

        assert collect_ids(Multi(Ref(source, "gallery"), Ref(source, "gallery_urls"))) == []

    def test__rich__returns_marker_ids(self) -> None:
        """Return IDs embedded in markup."""
        product = Product(detail='<img data-href="d1" src=""><img data-href="d2" src="">')

        binding = Rich(Ref(product, "detail"), Ref(product, "detail_html"))

        assert collect_ids(binding) == ["d1", "d2"]

    def test__unknown_binding__raises(self) -> None:
        """Reject anything outside the three binding kinds."""
        with pytest.raises(TypeError, match="Unsupported binding"):
            collect_ids(object())  # type: ignore[arg-type]


class TestFillBinding:
    """Tests for fill_binding()."""

    def test__single__writes_url(self) -> None:
        """Write the resolved URL into the target."""
        product = Product(cover="c1")

        fill_binding(
            Single(Ref(product, "cover"), Ref(product, "cover_url")),
            {"c1": ok("https://cdn/c1")},
        )

        assert product.cover_url == "https://cdn/c1"
        assert product.cover == "c1"

    def test__single_unresolved__keeps_original(self) -> None:
        """Leave the target untouched when the ID is missing or failed."""
        product = Product(cover="c1", cover_url="original")
        binding = Single(Ref(product, "cover"), Ref(product, "cover_url"))

        fill_binding(binding, {})
        assert product.cover_url == "original"

        fill_binding(binding, {"c1": failed()})
        assert product.cover_url == "original"

    def test__single_transform__projects_resource(self) -> None:
        """Apply the transform to build the target value."""
        product = Product(cover="c1")
        target: dict[str, object] = {}

        fill_binding(
            Single(Ref(product, "cover"), Ref(target, "cover"), transform=lambda info: (info.url, info.success)),
            {"c1": ok("https://cdn/c1")},
        )

        assert target == {"cover": ("https://cdn/c1", True)}

    def test__single_variant__falls_back_to_url(self) -> None:
        """Use the primary URL when the variant is absent."""
        product = Product(cover="c1")
        binding = Single(Ref(product, "cover"), Ref(product, "cover_url")).use_variant("thumbnail")

        fill_binding(binding, {"c1": ok("https://cdn/c1")})

        assert product.cover_url == "https://cdn/c1"

    def test__single_variant__uses_variant_url(self) -> None:
        """Use the variant URL when present."""
        product = Product(cover="c1")
        binding = Single(Ref(product, "cover"), Ref(product, "cover_url")).use_variant("thumbnail")

        fill_binding(binding, {"c1": ok("https://cdn/c1", thumbnail="https://cdn/c1_t")})

        assert product.cover_url == "https://cdn/c1_t"

    def test__multi__keeps_length_and_positions(self) -> None:
        """Fill a same-length list with zero values for gaps."""
        product = Product(gallery=["A", "", "B", "A"])

        fill_binding(
            Multi(Ref(product, "gallery"), Ref(product, "gallery_urls")),
            {"A": ok("https://cdn/a"), "B": ok("https://cdn/b")},
        )

        assert len(product.gallery_urls) == 4
        assert product.gallery_urls[1] == ""
        assert product.gallery_urls[0] == product.gallery_urls[3] == "https://cdn/a"
        assert product.gallery_urls[2] == "https://cdn/b"

    def test__multi_failed__leaves_zero_value(self) -> None:
        """Leave zero at positions that failed to resolve."""
        product = Product(gallery=["A", "B"])

        fill_binding(
            Multi(Ref(product, "gallery"), Ref(product, "gallery_urls"), zero=None),
            {"A": failed(), "B": ok("https://cdn/b")},
        )

        assert product.gallery_urls == [None, "https://cdn/b"]

    def test__non_string_ids__leave_targets_at_zero(self) -> None:
        """Skip non-string IDs without touching the single target."""
        source: dict[str, object] = {"cover": 7, "cover_url": "original", "gallery": ["A", 3]}
        resources = {"A": ok("https://cdn/a")}

        fill_binding(Single(Ref(source, "cover"), Ref(source, "cover_url")), resources)
        fill_binding(Multi(Ref(source, "gallery"), Ref(source, "gallery_urls")), resources)

        assert source["cover_url"] == "original"
        assert source["gallery_urls"] == ["https://cdn/a", ""]

    def test__rich__rewrites_into_target(self) -> None:
        """Write rewritten markup and leave the raw field alone."""
        raw = '<img data-href="d1" src="old">'
        product = Product(detail=raw)

        fill_binding(
            Rich(Ref(product, "detail"), Ref(product, "detail_html")),
            {"d1": ok("https://cdn/d1")},
        )

        assert product.detail == raw
        assert product.detail_html == '<img data-href="d1" src="https://cdn/d1">'

    def test__rich_with_pattern__uses_custom_pattern(self) -> None:
        """Use a custom marker pattern."""
        product = Product(detail="<img data-file='d1' src='old'>")
        binding = Rich(Ref(product, "detail"), Ref(product, "detail_html")).with_pattern(
            r"data-file='([A-Za-z0-9_-]+)' src='(?P<url>[^']*)'"
        )

        fill_binding(binding, {"d1": ok("https://cdn/d1")})

        assert product.detail_html == "<img data-file='d1' src='https://cdn/d1'>"
