"""Fair-value upside and technical fair-price filters."""

from __future__ import annotations

from dataclasses import dataclass

from screener.config import TechnicalFilterConfig, UpsideFilterConfig
from screener.domain.models import Candidate


@dataclass(frozen=True)
class UpsideFilter:
    """Requires a positive upside and/or a minimum upside (percent).

    A missing upside fails whichever requirement is configured.
    """

    config: UpsideFilterConfig

    @property
    def name(self) -> str:
        return "Upside"

    def filter(self, item: Candidate) -> tuple[bool, str]:
        upside = item.upside
        if upside is None:
            return False, "upside not available"
        if self.config.require_positive and upside <= 0:
            return False, f"upside {upside:.1f}% not positive"
        if self.config.min_upside is not None and upside < self.config.min_upside:
            return False, (
                f"upside {upside:.1f}% below minimum {self.config.min_upside:.1f}%"
            )
        return True, ""


@dataclass(frozen=True)
class TechnicalFilter:
    """Compares the price against the technical fair and minimum prices."""

    config: TechnicalFilterConfig

    @property
    def name(self) -> str:
        return "Technical"

    def filter(self, item: Candidate) -> tuple[bool, str]:
        fair = item.technical_fair_price
        floor = item.technical_min_price
        if fair is None and floor is None:
            if self.config.requires_analysis:
                return False, "technical analysis not available"
            return True, ""
        price = item.price
        if price is None:
            return False, "price not available"
        if self.config.require_below_fair_price:
            if fair is None:
                return False, "technical fair price not available"
            if price > fair:
                return False, f"price {price:.2f} above technical fair price {fair:.2f}"
        if self.config.require_above_min_price:
            if floor is None:
                return False, "technical minimum price not available"
            if price < floor:
                return False, f"price {price:.2f} below technical minimum {floor:.2f}"
        return True, ""
