from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal


NATIVE_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = 1_000_000_000


def is_native(mint: str) -> bool:
    return mint == NATIVE_MINT


def to_ui(amount_raw: int, decimals: int) -> Decimal:
    """Raw base units -> human units."""
    return Decimal(amount_raw) / (Decimal(10) ** decimals)


def to_raw(amount_ui: Decimal, decimals: int) -> int:
    """Human units -> raw base units (truncated toward zero)."""
    return int(Decimal(str(amount_ui)) * (Decimal(10) ** decimals))


@dataclass(frozen=True)
class BalanceSnapshot:
    owner: str
    mint: str
    amount_raw: int
    decimals: int
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ui_amount(self) -> Decimal:
        return to_ui(self.amount_raw, self.decimals)


@dataclass(frozen=True)
class BalanceDelta:
    """
    Realized balance change for one (owner, mint).

    change_raw is after - before as read from chain. amount_raw is the logical
    transfer: for the native asset the network fee debited from the same
    balance is excluded.
    """
    owner: str
    mint: str
    before_raw: int
    after_raw: int
    change_raw: int
    fee_lamports: int
    amount_raw: int
    decimals: int
    attempts: int
    changed: bool

    @property
    def ui_amount(self) -> Decimal:
        return to_ui(self.amount_raw, self.decimals)

    @property
    def fee_sol(self) -> Decimal:
        return to_ui(self.fee_lamports, 9)

    @classmethod
    def zero(cls, before: BalanceSnapshot, attempts: int) -> "BalanceDelta":
        return cls(
            owner=before.owner,
            mint=before.mint,
            before_raw=before.amount_raw,
            after_raw=before.amount_raw,
            change_raw=0,
            fee_lamports=0,
            amount_raw=0,
            decimals=before.decimals,
            attempts=attempts,
            changed=False,
        )
