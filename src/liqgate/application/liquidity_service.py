"""
liquidity_service.py - Liquidity-provider operations over the reliability layer

Each write operation:
1. Resolves tokens/positions from typed registries
2. Asks the AMM port for a prepared (unsigned) transaction
3. Hands it to TransactionSubmitter with the pool as fee reference account
4. Recovers realized amounts (balances or refreshed position state)

Amounts in are UI units; the service converts to raw units with token decimals.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from solders.keypair import Keypair

from ..config.solana_tokens import TokenRegistry
from ..domain.balances import LAMPORTS_PER_SOL, NATIVE_MINT, is_native, to_raw, to_ui
from ..domain.positions import (
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
from ..engines.execution.balance_observer import BalanceDeltaObserver
from ..engines.execution.transaction_submitter import TransactionSubmitter
from ..errors import PositionNotFoundError
from ..ports.amm import LiquidityPoolPort, LiquidityProtocolPort, PreparedTransaction
from ..ports.chain import ChainPort
from .pool_registry import PoolRegistry

DEFAULT_SLIPPAGE_BPS = 100


class LiquidityService:
    def __init__(
        self,
        keypair: Keypair,
        chain: ChainPort,
        tokens: TokenRegistry,
        protocol: Optional[LiquidityProtocolPort],
        submitter: TransactionSubmitter,
        observer: BalanceDeltaObserver,
        pools: Optional[PoolRegistry[LiquidityPoolPort]] = None,
    ):
        self.keypair = keypair
        self.chain = chain
        self.tokens = tokens
        self.protocol = protocol
        self.submitter = submitter
        self.observer = observer
        self.pools: PoolRegistry[LiquidityPoolPort] = pools or PoolRegistry(self._load_pool)

    @property
    def owner(self) -> str:
        return str(self.keypair.pubkey())

    # =========================================================================
    # BALANCES
    # =========================================================================

    async def get_balances(self, address: Optional[str] = None) -> List[TokenBalance]:
        """
        Native SOL plus every token account whose mint is in the token list.

        Wrapped SOL is folded into the single SOL entry.
        """
        owner = address or self.owner
        lamports = await self.chain.get_native_balance(owner)
        token_raw = await self.chain.get_token_balances_raw(owner)

        sol_ui = to_ui(lamports, 9)
        balances: List[TokenBalance] = []
        for mint, raw in token_raw.items():
            token = self.tokens.find_mint(mint)
            if token is None:
                continue
            ui_amount = to_ui(raw, token.decimals)
            if is_native(mint):
                sol_ui += ui_amount
                continue
            balances.append(TokenBalance(mint=mint, name=token.symbol, ui_amount=ui_amount))

        balances.insert(0, TokenBalance(mint=NATIVE_MINT, name="SOL", ui_amount=sol_ui))
        return balances

    # =========================================================================
    # SWAPS
    # =========================================================================

    async def execute_swap(
        self,
        input_symbol: str,
        output_symbol: str,
        amount: Decimal,
        pool_address: str,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> SwapResult:
        input_token = self.tokens.by_symbol(input_symbol)
        output_token = self.tokens.by_symbol(output_symbol)
        if input_token.mint == output_token.mint:
            raise ValueError("input and output tokens must differ")
        if not 0 <= slippage_bps <= 10_000:
            raise ValueError(f"slippage_bps must be within [0, 10000], got {slippage_bps}")

        amount_raw = to_raw(Decimal(str(amount)), input_token.decimals)
        if amount_raw <= 0:
            raise ValueError(f"swap amount must be positive, got {amount}")

        pool = await self._pool(pool_address)
        owner = self.owner
        before_in = await self.observer.snapshot(owner, input_token.mint)
        before_out = await self.observer.snapshot(owner, output_token.mint)

        prepared = await pool.build_swap(owner, input_token.mint, output_token.mint, amount_raw, slippage_bps)
        logger.info(
            f"SWAP | {input_token.symbol}->{output_token.symbol} | amount={amount} | "
            f"pool={pool_address[:8]}... | slippage_bps={slippage_bps}"
        )
        signature = await self._submit(prepared, pool_address)

        in_delta = await self.observer.observe(owner, input_token.mint, before_in, signature=signature)
        out_delta = await self.observer.observe(owner, output_token.mint, before_out, signature=signature)

        fee_lamports = in_delta.fee_lamports or out_delta.fee_lamports
        if not fee_lamports:
            fee_lamports = await self.observer.transaction_fee(signature)

        result = SwapResult(
            signature=signature,
            total_input_swapped=abs(in_delta.ui_amount),
            total_output_swapped=abs(out_delta.ui_amount),
            fee=Decimal(fee_lamports) / LAMPORTS_PER_SOL,
        )
        logger.info(
            f"SWAP_DONE | sig={signature} | in={result.total_input_swapped} | "
            f"out={result.total_output_swapped} | fee={result.fee}"
        )
        return result

    # =========================================================================
    # POSITIONS
    # =========================================================================

    async def open_position(
        self,
        base_symbol: str,
        quote_symbol: str,
        lower_price: Decimal,
        upper_price: Decimal,
        pool_address: str,
    ) -> PositionOpened:
        base = self.tokens.by_symbol(base_symbol)
        quote = self.tokens.by_symbol(quote_symbol)
        lower = Decimal(str(lower_price))
        upper = Decimal(str(upper_price))
        if lower <= 0 or upper <= lower:
            raise ValueError(f"price range must satisfy 0 < lower < upper, got [{lower}, {upper}]")

        pool = await self._pool(pool_address)
        if {base.mint, quote.mint} != {pool.token_x_mint, pool.token_y_mint}:
            raise ValueError(f"pool {pool_address} does not trade {base.symbol}/{quote.symbol}")

        position_keypair = Keypair()
        position_address = str(position_keypair.pubkey())
        prepared = await pool.build_open_position(self.owner, position_address, lower, upper)

        logger.info(
            f"OPEN_POSITION | {base.symbol}/{quote.symbol} | range=[{lower}, {upper}] | "
            f"position={position_address}"
        )
        signature = await self._submit(prepared, pool_address, extra=[position_keypair])
        return PositionOpened(signature=signature, position_address=position_address)

    async def close_position(self, position_address: str) -> str:
        pool, position = await self._resolve_position(position_address)
        prepared = await pool.build_close_position(self.owner, position)
        logger.info(f"CLOSE_POSITION | position={position_address} | pool={pool.address[:8]}...")
        return await self._submit(prepared, pool.address)

    async def positions_owned(self, pool_address: str, address: Optional[str] = None) -> PositionsOwned:
        if not pool_address:
            raise ValueError("pool_address is required")
        pool = await self._pool(pool_address)
        active_bin = await pool.get_active_bin()
        positions = await pool.get_positions(address or self.owner)
        return PositionsOwned(active_bin=active_bin, positions=positions)

    async def position_info(self, position_address: str) -> PositionInfo:
        """Price range, withdrawable amounts and uncollected fees of one position, in UI units."""
        pool, position = await self._resolve_position(position_address)
        active_bin = await pool.get_active_bin()
        x_decimals = self.observer.decimals_for(pool.token_x_mint)
        y_decimals = self.observer.decimals_for(pool.token_y_mint)
        return PositionInfo(
            position_address=position.address,
            pool_address=pool.address,
            pool_price=active_bin.price,
            token_x_mint=pool.token_x_mint,
            token_y_mint=pool.token_y_mint,
            lower=PriceBound(position.lower_bin_id, await pool.bin_price(position.lower_bin_id)),
            upper=PriceBound(position.upper_bin_id, await pool.bin_price(position.upper_bin_id)),
            amount_x=to_ui(position.total_x_raw, x_decimals),
            amount_y=to_ui(position.total_y_raw, y_decimals),
            fee_x=to_ui(position.fee_x_raw, x_decimals),
            fee_y=to_ui(position.fee_y_raw, y_decimals),
        )

    # =========================================================================
    # LIQUIDITY
    # =========================================================================

    async def add_liquidity(
        self,
        position_address: str,
        base_amount: Decimal,
        quote_amount: Decimal,
        slippage_pct: Optional[Decimal] = None,
    ) -> LiquidityChange:
        pool, position = await self._resolve_position(position_address)
        amount_x_raw = to_raw(Decimal(str(base_amount)), self.observer.decimals_for(pool.token_x_mint))
        amount_y_raw = to_raw(Decimal(str(quote_amount)), self.observer.decimals_for(pool.token_y_mint))
        if amount_x_raw < 0 or amount_y_raw < 0 or amount_x_raw + amount_y_raw == 0:
            raise ValueError("add_liquidity needs non-negative amounts and at least one positive")

        before = position.liquidity()
        prepared = await pool.build_add_liquidity(
            self.owner,
            position,
            amount_x_raw,
            amount_y_raw,
            Decimal(str(slippage_pct)) if slippage_pct is not None else None,
        )
        logger.info(f"ADD_LIQUIDITY | position={position_address} | x={amount_x_raw} | y={amount_y_raw}")
        signature = await self._submit(prepared, pool.address)

        after = await self._liquidity_after(pool, position_address)
        logger.info(f"ADD_LIQUIDITY_DONE | sig={signature} | before={before} | after={after}")
        return LiquidityChange(signature=signature, liquidity_before=before, liquidity_after=after)

    async def remove_liquidity(self, position_address: str, percentage: Decimal) -> LiquidityChange:
        pct = Decimal(str(percentage))
        if not 0 < pct <= 100:
            raise ValueError(f"percentage must be in (0, 100], got {percentage}")

        pool, position = await self._resolve_position(position_address)
        before = position.liquidity()
        bps = int(pct * 100)
        prepared = await pool.build_remove_liquidity(self.owner, position, bps)
        logger.info(f"REMOVE_LIQUIDITY | position={position_address} | bps={bps}")
        signature = await self._submit(prepared, pool.address)

        after = await self._liquidity_after(pool, position_address)
        logger.info(f"REMOVE_LIQUIDITY_DONE | sig={signature} | before={before} | after={after}")
        return LiquidityChange(signature=signature, liquidity_before=before, liquidity_after=after)

    async def collect_fees(self, position_address: str) -> str:
        pool, position = await self._resolve_position(position_address)
        prepared = await pool.build_claim_fees(self.owner, position)
        logger.info(
            f"COLLECT_FEES | position={position_address} | fee_x={position.fee_x_raw} | fee_y={position.fee_y_raw}"
        )
        return await self._submit(prepared, pool.address)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_protocol(self) -> LiquidityProtocolPort:
        if self.protocol is None:
            raise RuntimeError("no liquidity protocol configured; pool operations are unavailable")
        return self.protocol

    async def _load_pool(self, pool_address: str) -> LiquidityPoolPort:
        return await self._require_protocol().load_pool(pool_address)

    async def _pool(self, pool_address: str) -> LiquidityPoolPort:
        pool = await self.pools.get(pool_address)
        await pool.refresh()
        return pool

    async def _resolve_position(self, position_address: str) -> Tuple[LiquidityPoolPort, PositionState]:
        found = await self._require_protocol().find_position(self.owner, position_address)
        if found is None:
            raise PositionNotFoundError(position_address)
        pool_address, position = found
        return await self._pool(pool_address), position

    async def _liquidity_after(self, pool: LiquidityPoolPort, position_address: str) -> PositionLiquidity:
        await pool.refresh()
        for position in await pool.get_positions(self.owner):
            if position.address == position_address:
                return position.liquidity()
        raise PositionNotFoundError(position_address)

    async def _submit(
        self,
        prepared: PreparedTransaction,
        reference_account: str,
        extra: Sequence[Keypair] = (),
    ) -> str:
        signers = [self.keypair, *extra, *prepared.extra_signers]
        return await self.submitter.submit(
            prepared.transaction,
            signers,
            fee_reference_account=reference_account,
        )
