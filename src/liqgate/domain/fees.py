from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


TIER_NAMES = ("low", "medium", "high", "extreme")


@dataclass(frozen=True)
class FeeEstimate:
    """Priority fee schedule in micro-lamports per compute unit."""

    low: int
    medium: int
    high: int
    extreme: int
    source: str = "network"  # "network" or "fallback"

    def __post_init__(self):
        if not (0 <= self.low <= self.medium <= self.high <= self.extreme):
            raise ValueError(
                f"fee tiers must be non-negative and non-decreasing: "
                f"low={self.low} medium={self.medium} high={self.high} extreme={self.extreme}"
            )

    def tier(self, name: str) -> int:
        key = name.lower()
        if key not in TIER_NAMES:
            raise KeyError(f"Unknown fee tier: {name}")
        return getattr(self, key)

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in TIER_NAMES}
