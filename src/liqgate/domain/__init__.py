from .balances import (
    LAMPORTS_PER_SOL,
    NATIVE_MINT,
    BalanceDelta,
    BalanceSnapshot,
    is_native,
    to_raw,
    to_ui,
)
from .commitment import Commitment
from .confirmation import ConfirmationResult, ConfirmationState
from .fees import FeeEstimate
from .positions import (
    ActiveBin,
    LiquidityChange,
    PositionInfo,
    PositionLiquidity,
    PositionOpened,
    PositionsOwned,
    PositionState,
    PriceBound,
    SwapResult,
    TokenBalance,
)

__all__ = [
    "LAMPORTS_PER_SOL",
    "NATIVE_MINT",
    "BalanceDelta",
    "BalanceSnapshot",
    "is_native",
    "to_raw",
    "to_ui",
    "Commitment",
    "ConfirmationResult",
    "ConfirmationState",
    "FeeEstimate",
    "ActiveBin",
    "LiquidityChange",
    "PositionInfo",
    "PositionLiquidity",
    "PositionOpened",
    "PositionsOwned",
    "PositionState",
    "PriceBound",
    "SwapResult",
    "TokenBalance",
]
