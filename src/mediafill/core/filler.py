"""Filler: collects file IDs, resolves them in one batch, distributes URLs.

Usage:
    filler = Filler(resolver)
    await filler.fill(
        Single(Ref(p, "cover"), Ref(p, "cover_url")),
        Multi(Ref(p, "gallery"), Ref(p, "gallery_urls")),
        Rich(Ref(p, "detail"), Ref(p, "detail_html")),
    )

Every fill call issues at most one resolver request, no matter how many
bindings or objects take part in it.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from mediafill.core.binding import Binding, collect_ids, fill_binding
from mediafill.core.collector import IdentifierSet
from mediafill.core.resource import Resolver
from mediafill.core.richtext import RichTextRewriter
from mediafill.mapping.executor import MappingPass
from mediafill.mapping.registry import PlanRegistry

if TYPE_CHECKING:
    from mediafill.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")
D = TypeVar("D")

BindingFunc = Callable[[T], Iterable[Binding]]


class Filler:
    """Resolves file IDs behind bindings into delivery URLs."""

    def __init__(
        self,
        resolver: Resolver,
        *,
        registry: PlanRegistry | None = None,
        rewriter: RichTextRewriter | None = None,
        variant: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize filler.

        Args:
            resolver: Batch lookup of file IDs
            registry: Plan cache for auto_fill (a private one if None)
            rewriter: Rich text rewriter used by auto_fill
            variant: Variant name used by auto_fill for URLs and rich text
            timeout: Seconds to wait for the resolver before giving up
        """
        self.resolver = resolver
        self.registry = registry if registry is not None else PlanRegistry()
        self.rewriter = rewriter
        self.variant = variant
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: "Config", resolver: Resolver) -> "Filler":
        """Create a filler from configuration.

        Args:
            config: Loaded configuration
            resolver: Batch lookup of file IDs

        Returns:
            Filler with registry, rewriter and timeout taken from config
        """
        return cls(
            resolver,
            registry=PlanRegistry(
                strict=config.mapping.strict,
                max_depth=config.mapping.max_depth,
            ),
            rewriter=config.richtext.create_rewriter(),
            variant=config.richtext.variant,
            timeout=config.directory.timeout if config.directory else None,
        )

    async def fill(self, *bindings: Binding | None) -> None:
        """Resolve every ID behind the bindings and write the results.

        Unresolved IDs leave their destinations untouched. If the resolver
        fails, nothing is written and its exception propagates unchanged.

        Args:
            bindings: Bindings to fill; None entries are ignored
        """
        active = [binding for binding in bindings if binding is not None]
        if not active:
            return

        ids = IdentifierSet()
        for binding in active:
            ids.update(collect_ids(binding))

        if not ids:
            return

        logger.debug(f"Resolving {len(ids)} file IDs for {len(active)} bindings")
        resources = await self._resolve(ids.to_list())

        for binding in active:
            fill_binding(binding, resources)

    async def fill_one(self, item: T | None, bind_fn: BindingFunc[T]) -> None:
        """Fill a single object using its binding function."""
        if item is None:
            return
        await self.fill(*bind_fn(item))

    async def fill_many(self, items: Iterable[T | None], bind_fn: BindingFunc[T]) -> None:
        """Fill several objects with one shared lookup.

        Args:
            items: Objects to fill; None entries are skipped
            bind_fn: Returns the bindings of one object
        """
        bindings: list[Binding] = []
        for item in items:
            if item is not None:
                bindings.extend(bind_fn(item))
        await self.fill(*bindings)

    async def fill_map(self, items: Mapping[Any, T | None], bind_fn: BindingFunc[T]) -> None:
        """Fill the values of a mapping with one shared lookup."""
        await self.fill_many(items.values(), bind_fn)

    async def auto_fill(
        self,
        sources: Iterable[Any],
        dst_type: type[D],
        *,
        src_type: Any = None,
    ) -> list[D | None]:
        """Map source values onto new destination records and fill their URLs.

        Destination fields are derived from annotations: ``URL``/``URLs``
        fields resolve the ID field they name (or ``cover_url`` -> ``cover``),
        ``RichText`` fields are copied and rewritten, nested records, lists and
        maps are mapped recursively, and everything else is copied when the
        types are compatible.

        Args:
            sources: Source objects; None entries map to None
            dst_type: Destination dataclass
            src_type: Source shape; defaults to each item's own type

        Returns:
            One destination record per source value, in order

        Raises:
            MappingError: If a plan cannot be derived for a shape pair
        """
        mapping = MappingPass(self.rewriter, self.variant)
        results: list[D | None] = []
        for source in sources:
            if source is None:
                results.append(None)
                continue
            plan = self.registry.plan_for(src_type or type(source), dst_type)
            results.append(mapping.map(source, plan))

        await self.fill(*mapping.bindings)
        return results

    async def auto_fill_one(
        self,
        source: Any,
        dst_type: type[D],
        *,
        src_type: Any = None,
    ) -> D | None:
        """Map a single source value; returns None for a None source."""
        if source is None:
            return None
        results = await self.auto_fill([source], dst_type, src_type=src_type)
        return results[0]

    async def _resolve(self, ids: list[str]) -> Mapping[str, Any]:
        if self.timeout is None:
            return await self.resolver.resolve(ids)
        async with asyncio.timeout(self.timeout):
            return await self.resolver.resolve(ids)
