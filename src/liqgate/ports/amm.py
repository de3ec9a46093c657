from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from solders.keypair import Keypair

from ..domain.positions import ActiveBin, PositionState
from ..engines.execution.transaction import UnsignedTransaction


@dataclass
class SwapQuote:
    """Quote computed by the AMM SDK; opaque to the reliability layer."""

    amount_in_raw: int
    min_amount_out_raw: int
    price_impact_pct: Optional[Decimal] = None


@dataclass
class PreparedTransaction:
    """Ready-to-sign transaction handed over by the AMM SDK."""

    transaction: UnsignedTransaction
    extra_signers: List[Keypair] = field(default_factory=list)
    quote: Optional[SwapQuote] = None


class LiquidityPoolPort(ABC):
    """One bin-based pool, as wrapped by the external AMM SDK."""

    address: str
    token_x_mint: str
    token_y_mint: str

    @abstractmethod
    async def refresh(self) -> None:
        """Re-fetch on-chain pool state."""
        ...

    @abstractmethod
    async def build_swap(
        self,
        owner: str,
        input_mint: str,
        output_mint: str,
        amount_in_raw: int,
        slippage_bps: int,
    ) -> PreparedTransaction:
        ...

    @abstractmethod
    async def build_open_position(
        self,
        owner: str,
        position_address: str,
        lower_price: Decimal,
        upper_price: Decimal,
    ) -> PreparedTransaction:
        ...

    @abstractmethod
    async def build_close_position(self, owner: str, position: PositionState) -> PreparedTransaction:
        ...

    @abstractmethod
    async def build_add_liquidity(
        self,
        owner: str,
        position: PositionState,
        amount_x_raw: int,
        amount_y_raw: int,
        slippage_pct: Optional[Decimal],
    ) -> PreparedTransaction:
        ...

    @abstractmethod
    async def build_remove_liquidity(
        self,
        owner: str,
        position: PositionState,
        bps: int,
    ) -> PreparedTransaction:
        ...

    @abstractmethod
    async def build_claim_fees(self, owner: str, position: PositionState) -> PreparedTransaction:
        ...

    @abstractmethod
    async def get_positions(self, owner: str) -> List[PositionState]:
        ...

    @abstractmethod
    async def get_active_bin(self) -> ActiveBin:
        ...

    @abstractmethod
    async def bin_price(self, bin_id: int) -> Decimal:
        """UI price (quote per base) at `bin_id`; bin math lives in the SDK."""
        ...


class LiquidityProtocolPort(ABC):
    """Protocol-wide entry points of the AMM SDK."""

    @abstractmethod
    async def load_pool(self, pool_address: str) -> LiquidityPoolPort:
        ...

    @abstractmethod
    async def find_position(self, owner: str, position_address: str) -> Optional[Tuple[str, PositionState]]:
        """(pool_address, position) for a position owned by `owner`, or None."""
        ...
