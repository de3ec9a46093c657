from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .commitment import Commitment


class ConfirmationState(Enum):
    """
    Confirmation state of a signature.

    FAILED is terminal: the transaction is included and its failure is final,
    so resubmitting would fail identically.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass(frozen=True)
class ConfirmationResult:
    signature: str
    state: ConfirmationState
    commitment: Optional[Commitment] = None  # strongest level observed
    reason: Optional[str] = None             # on-chain error for FAILED
    source: Optional[str] = None             # "status" | "address"

    @property
    def is_success(self) -> bool:
        return self.state in (ConfirmationState.CONFIRMED, ConfirmationState.FINALIZED)

    @property
    def is_failed(self) -> bool:
        return self.state is ConfirmationState.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.state is not ConfirmationState.PENDING

    @classmethod
    def pending(cls, signature: str) -> "ConfirmationResult":
        return cls(signature=signature, state=ConfirmationState.PENDING)
