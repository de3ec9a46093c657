"""
balance_observer.py - Recover realized amounts from before/after balances

The swap and liquidity instructions do not return the amounts actually moved,
and RPC nodes can lag the confirmation by a few slots, so after a confirmed
transaction the balance is polled until it moves away from the before value.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from ...config.solana_tokens import TokenRegistry
from ...domain.balances import BalanceDelta, BalanceSnapshot, is_native
from ...errors import TransientNetworkError
from ...ports.chain import ChainPort

NATIVE_DECIMALS = 9


class BalanceDeltaObserver:
    def __init__(
        self,
        chain: ChainPort,
        tokens: TokenRegistry,
        max_attempts: int = 10,
        interval: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.chain = chain
        self.tokens = tokens
        self.max_attempts = max_attempts
        self.interval = interval
        self._sleep = sleep

    def decimals_for(self, mint: str) -> int:
        if is_native(mint):
            return NATIVE_DECIMALS
        return self.tokens.by_mint(mint).decimals

    async def snapshot(self, owner: str, mint: str) -> BalanceSnapshot:
        """
        Read the current balance, retrying transient failures.

        Raises the last TransientNetworkError once every attempt has failed.
        """
        decimals = self.decimals_for(mint)
        attempt = 1
        while True:
            try:
                amount = await self._read(owner, mint)
                return BalanceSnapshot(owner=owner, mint=mint, amount_raw=amount, decimals=decimals)
            except TransientNetworkError as e:
                logger.warning(f"BALANCE_SNAPSHOT | retry {attempt}/{self.max_attempts} | mint={mint[:8]}... | {e}")
                if attempt >= self.max_attempts:
                    raise
            await self._sleep(self.interval)
            attempt += 1

    async def observe(
        self,
        owner: str,
        mint: str,
        before: BalanceSnapshot,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
        signature: Optional[str] = None,
    ) -> BalanceDelta:
        """
        Poll until the balance differs from `before`, then build the delta.

        For the native mint, the fee paid by `signature` is excluded from the
        logical amount. No change after all attempts yields a zero delta.
        """
        attempts_allowed = max_attempts if max_attempts is not None else self.max_attempts
        wait = interval if interval is not None else self.interval

        attempt = 0
        while attempt < attempts_allowed:
            attempt += 1
            try:
                current = await self._read(owner, mint)
            except TransientNetworkError as e:
                logger.debug(f"BALANCE_POLL | read failed | attempt={attempt} | {e}")
                current = None

            if current is not None and current != before.amount_raw:
                return await self._delta(before, current, attempt, signature)

            if attempt < attempts_allowed:
                await self._sleep(wait)

        logger.warning(
            f"BALANCE_UNCHANGED | owner={owner[:8]}... | mint={mint[:8]}... | attempts={attempt}"
        )
        return BalanceDelta.zero(before, attempt)

    async def _delta(
        self,
        before: BalanceSnapshot,
        after_raw: int,
        attempts: int,
        signature: Optional[str],
    ) -> BalanceDelta:
        change = after_raw - before.amount_raw
        fee = 0
        if is_native(before.mint) and signature is not None:
            fee = await self.transaction_fee(signature)

        delta = BalanceDelta(
            owner=before.owner,
            mint=before.mint,
            before_raw=before.amount_raw,
            after_raw=after_raw,
            change_raw=change,
            fee_lamports=fee,
            amount_raw=change + fee,
            decimals=before.decimals,
            attempts=attempts,
            changed=True,
        )
        logger.debug(
            f"BALANCE_DELTA | mint={before.mint[:8]}... | change={change} | fee={fee} | attempts={attempts}"
        )
        return delta

    async def transaction_fee(self, signature: str) -> int:
        """Lamports paid by `signature`; 0 when not yet readable."""
        try:
            fee = await self.chain.get_transaction_fee(signature)
        except TransientNetworkError as e:
            logger.warning(f"TX_FEE | read failed | sig={signature[:16]}... | {e}")
            return 0
        return fee or 0

    async def _read(self, owner: str, mint: str) -> int:
        if is_native(mint):
            return await self.chain.get_native_balance(owner)
        return await self.chain.get_token_balance_raw(owner, mint)
