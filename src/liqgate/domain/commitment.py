from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Commitment(Enum):
    """Ordered confirmation strength: PROCESSED < CONFIRMED < FINALIZED."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, requested: "Commitment") -> bool:
        """True if an observed level is at least as strong as `requested`."""
        return self.rank >= requested.rank

    @classmethod
    def parse(cls, value: Any) -> Optional["Commitment"]:
        """
        Parse a commitment from RPC output.

        Accepts our own enum, plain strings ("confirmed") and solders'
        TransactionConfirmationStatus (str() gives "TransactionConfirmationStatus.Confirmed").
        """
        if value is None:
            return None
        if isinstance(value, Commitment):
            return value
        name = str(value).rsplit(".", 1)[-1].strip().lower()
        for level in cls:
            if level.value == name:
                return level
        return None


_RANKS = {
    Commitment.PROCESSED: 0,
    Commitment.CONFIRMED: 1,
    Commitment.FINALIZED: 2,
}
