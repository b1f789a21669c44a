"""
Filter Pipeline - chains screening filters and keeps per-filter statistics.

An item must pass every filter; evaluation short-circuits on the first
failure and the rejection reason is prefixed with the filter name.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Sequence, Tuple, TypeVar

from screener.domain.protocols import ScreeningFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FilterPipeline(Generic[T]):
    """
    Composite filter applied in insertion order.

    Example:
        pipeline = FilterPipeline()
        pipeline.add_filter(ExclusionFilter(config.universe))
        pipeline.add_filter(QualityFilter(config.quality))

        passed, rejections = pipeline.run(instruments, lambda i: i.ticker)
        stats = pipeline.get_summary()
    """

    _filters: List[ScreeningFilter] = field(default_factory=list)
    _stats: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def add_filter(self, screening_filter: ScreeningFilter) -> "FilterPipeline[T]":
        """Append a filter; returns self for chaining."""
        self._filters.append(screening_filter)
        self._stats[screening_filter.name] = {"passed": 0, "failed": 0}
        return self

    def __len__(self) -> int:
        return len(self._filters)

    def apply(self, item: T) -> Tuple[bool, str]:
        """
        Apply all filters to one item.

        Returns:
            Tuple of (passed, reason) where a failing reason reads
            ``"[FilterName] rejection reason"``.
        """
        for f in self._filters:
            passed, reason = f.filter(item)
            if not passed:
                self._stats[f.name]["failed"] += 1
                return False, f"[{f.name}] {reason}"
            self._stats[f.name]["passed"] += 1
        return True, "Passed all filters"

    def run(
        self, items: Sequence[T], key: Callable[[T], str]
    ) -> Tuple[List[T], Dict[str, str]]:
        """
        Filter a batch, preserving input order.

        Returns:
            Tuple of (passed items, rejection reason by key).
        """
        passed: List[T] = []
        rejections: Dict[str, str] = {}
        for item in items:
            ok, reason = self.apply(item)
            if ok:
                passed.append(item)
            else:
                rejections[key(item)] = reason
                logger.debug("%s rejected: %s", key(item), reason)
        return passed, rejections

    def get_summary(self) -> Dict[str, Dict[str, int]]:
        """Statistics per filter: ``{name: {"passed": n, "failed": m}}``."""
        return {name: dict(counts) for name, counts in self._stats.items()}

    def reset_stats(self) -> None:
        for name in self._stats:
            self._stats[name] = {"passed": 0, "failed": 0}
