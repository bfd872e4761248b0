"""Plan registry: derives and caches mapping plans per shape pair.

A registry is owned by a Filler, so its lifetime follows the hosting service
rather than the process. Plans are never evicted; the number of distinct
shape pairs is bounded by the types an application defines.
"""

import logging
import threading
from typing import Any

from mediafill.errors import CyclicShapeError, MappingDepthError, UnmappedFieldError
from mediafill.mapping.plan import PlanBuilder, TypeShapePlan, is_schemaless

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


class PlanRegistry:
    """Thread-safe cache of TypeShapePlan objects.

    Derivation runs outside the lock. Two threads building the same plan at
    once produce equivalent plans; the first one stored wins.
    """

    def __init__(self, *, strict: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """Initialize registry.

        Args:
            strict: Raise UnmappedFieldError for destination fields that have
                    no source counterpart instead of skipping them
            max_depth: Maximum nesting depth of shape pairs
        """
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.strict = strict
        self.max_depth = max_depth
        self._plans: dict[tuple[Any, type], TypeShapePlan] = {}
        self._dynamic: dict[type, TypeShapePlan] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

    def plan_for(self, src_type: Any, dst_type: type) -> TypeShapePlan:
        """Return the plan for a shape pair, deriving it on first use.

        Schema-less sources share one dynamic plan per destination type.

        Args:
            src_type: Source shape
            dst_type: Destination dataclass

        Returns:
            Cached or freshly derived plan

        Raises:
            CyclicShapeError: If the shape pair refers back to itself
            MappingDepthError: If nesting exceeds max_depth
            UnmappedFieldError: In strict mode, if destination fields are unmapped
        """
        if is_schemaless(src_type):
            return self.dynamic_plan_for(dst_type)

        key = (src_type, dst_type)
        with self._lock:
            plan = self._plans.get(key)
        if plan is not None:
            return plan

        stack = self._stack()
        if key in stack:
            raise CyclicShapeError([*stack[stack.index(key) :], key])
        if len(stack) >= self.max_depth:
            raise MappingDepthError(self.max_depth, src_type, dst_type)

        stack.append(key)
        try:
            plan = PlanBuilder(self.plan_for).build(src_type, dst_type)
        finally:
            stack.pop()

        self._check_unmapped(plan)
        with self._lock:
            return self._plans.setdefault(key, plan)

    def dynamic_plan_for(self, dst_type: type) -> TypeShapePlan:
        """Return the plan for filling dst_type from a schema-less payload."""
        with self._lock:
            plan = self._dynamic.get(dst_type)
        if plan is not None:
            return plan

        plan = PlanBuilder(self.plan_for).build_dynamic(dst_type)
        self._check_unmapped(plan)
        with self._lock:
            return self._dynamic.setdefault(dst_type, plan)

    def clear(self) -> None:
        """Drop every cached plan."""
        with self._lock:
            self._plans.clear()
            self._dynamic.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._plans) + len(self._dynamic)

    def _stack(self) -> list[tuple[Any, type]]:
        """Shape pairs currently being derived on this thread."""
        stack: list[tuple[Any, type]] | None = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
        return stack

    def _check_unmapped(self, plan: TypeShapePlan) -> None:
        if not plan.unmapped:
            return
        if self.strict:
            raise UnmappedFieldError(plan.dst_type, list(plan.unmapped))
        logger.debug(
            f"Skipping unmapped fields on {plan.dst_type.__name__}: "
            f"{', '.join(plan.unmapped)}"
        )
