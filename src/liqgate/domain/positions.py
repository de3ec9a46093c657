from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class PositionState:
    """Liquidity position in a bin-based pool, as reported by the AMM SDK."""

    address: str
    pool_address: str
    lower_bin_id: int
    upper_bin_id: int
    total_x_raw: int
    total_y_raw: int
    fee_x_raw: int = 0
    fee_y_raw: int = 0
    owner: Optional[str] = None

    def __post_init__(self):
        if self.lower_bin_id > self.upper_bin_id:
            raise ValueError(
                f"lower_bin_id ({self.lower_bin_id}) must be <= upper_bin_id ({self.upper_bin_id})"
            )

    def liquidity(self) -> "PositionLiquidity":
        return PositionLiquidity(token_x=str(self.total_x_raw), token_y=str(self.total_y_raw))


@dataclass(frozen=True)
class PositionLiquidity:
    """Position amounts as raw-unit strings (mirrors the REST contract)."""

    token_x: str
    token_y: str


@dataclass(frozen=True)
class TokenBalance:
    mint: str
    name: str
    ui_amount: Decimal


@dataclass(frozen=True)
class SwapResult:
    signature: str
    total_input_swapped: Decimal
    total_output_swapped: Decimal
    fee: Decimal  # network fee in SOL


@dataclass(frozen=True)
class PositionOpened:
    signature: str
    position_address: str


@dataclass(frozen=True)
class LiquidityChange:
    signature: str
    liquidity_before: PositionLiquidity
    liquidity_after: PositionLiquidity


@dataclass(frozen=True)
class ActiveBin:
    """Bin currently holding the pool price; `price` is quote per base in UI units."""

    bin_id: int
    price: Decimal


@dataclass(frozen=True)
class PositionsOwned:
    active_bin: ActiveBin
    positions: List[PositionState]


@dataclass(frozen=True)
class PriceBound:
    bin_id: int
    price: Decimal


@dataclass(frozen=True)
class PositionInfo:
    """Read-only view of a position: range, withdrawable amounts and pool price."""

    position_address: str
    pool_address: str
    pool_price: Decimal
    token_x_mint: str
    token_y_mint: str
    lower: PriceBound
    upper: PriceBound
    amount_x: Decimal
    amount_y: Decimal
    fee_x: Decimal
    fee_y: Decimal

    @property
    def in_range(self) -> bool:
        return self.lower.price <= self.pool_price <= self.upper.price
