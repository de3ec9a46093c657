"""
transaction_submitter.py - Send-and-confirm loop bounded by block height

Flow per submit():
1. Estimate fees once, attach set_compute_unit_price at the configured tier
2. While the observed height is below last_valid_block_height (and attempts remain):
   sign -> sendTransaction(skipPreflight) -> sleep -> confirm -> refresh height
3. One final confirmation check before declaring the transaction expired

The chain may include an earlier broadcast after the loop stops sending, which
is why step 3 exists.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from loguru import logger
from solders.keypair import Keypair

from ...domain.commitment import Commitment
from ...domain.confirmation import ConfirmationResult
from ...domain.fees import TIER_NAMES
from ...errors import ExpirationError, OnChainExecutionError, TransientNetworkError
from ...ports.chain import ChainPort
from .confirmation_oracle import ConfirmationOracle
from .fee_estimator import FeeEstimator
from .submission_state import SubmissionState, SubmissionTracker
from .transaction import UnsignedTransaction


class TransactionSubmitter:
    def __init__(
        self,
        chain: ChainPort,
        fee_estimator: FeeEstimator,
        oracle: ConfirmationOracle,
        fee_tier: str = "high",
        confirm_interval: float = 0.5,
        validity_window_blocks: int = 100,
        max_attempts: int = 150,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if fee_tier not in TIER_NAMES:
            raise ValueError(f"fee_tier must be one of {TIER_NAMES}, got {fee_tier!r}")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        self.chain = chain
        self.fee_estimator = fee_estimator
        self.oracle = oracle
        self.fee_tier = fee_tier
        self.confirm_interval = confirm_interval
        self.validity_window_blocks = validity_window_blocks
        self.max_attempts = max_attempts
        self._sleep = sleep
        self.last_submission: Optional[SubmissionTracker] = None

    async def submit(
        self,
        tx: UnsignedTransaction,
        signers: Sequence[Keypair],
        fee_reference_account: Optional[str] = None,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> str:
        """
        Submit `tx` and block until it is confirmed at `commitment`.

        Returns:
            The transaction signature.

        Raises:
            OnChainExecutionError: included but failed; never retried
            ExpirationError: validity window closed without confirmation
            ValueError: a required signer is missing
        """
        tracker = SubmissionTracker()
        self.last_submission = tracker
        fee_payer = str(tx.fee_payer)

        fees = await self.fee_estimator.estimate(reference_account=fee_reference_account)
        price = fees.tier(self.fee_tier)
        tx.attach_priority_fee(price)
        tracker.transition(SubmissionState.FEE_ATTACHED)

        # fail fast on missing signers before anything is broadcast
        tx.sign(signers)

        height = await self._read_height(None)
        if tx.last_valid_block_height is None and height is not None:
            tx.last_valid_block_height = height + self.validity_window_blocks

        logger.info(
            f"TX_SUBMIT | payer={fee_payer[:8]}... | fee={price} ({self.fee_tier}, {fees.source}) | "
            f"height={height} | last_valid={tx.last_valid_block_height}"
        )

        signature: Optional[str] = None
        attempt = 0
        while attempt < self.max_attempts and not _window_closed(tx, height):
            attempt += 1
            tracker.transition(SubmissionState.SENDING)
            signed = tx.sign(signers)
            signature = signed.signature
            tracker.signature = signature

            try:
                await self.chain.send_raw_transaction(signed.raw, skip_preflight=True)
                logger.debug(f"TX_SENT | sig={signature} | attempt={attempt}")
            except TransientNetworkError as e:
                logger.warning(f"TX_SEND | error | sig={signature[:16]}... | attempt={attempt} | {e}")

            tracker.transition(SubmissionState.AWAITING_CONFIRMATION)
            await self._sleep(self.confirm_interval)

            result = await self.oracle.check(signature, commitment, address=fee_payer)
            if result.is_terminal:
                return self._finish(tracker, result, attempt)

            height = await self._read_height(height)
            if tx.last_valid_block_height is None and height is not None:
                tx.last_valid_block_height = height + self.validity_window_blocks

        if signature is not None:
            result = await self.oracle.check(signature, commitment, address=fee_payer)
            if result.is_terminal:
                return self._finish(tracker, result, attempt)

        tracker.transition(SubmissionState.EXPIRED)
        logger.warning(
            f"TX_EXPIRED | sig={signature} | attempts={attempt} | "
            f"last_valid={tx.last_valid_block_height} | height={height}"
        )
        raise ExpirationError(signature, tx.last_valid_block_height, height)

    def _finish(self, tracker: SubmissionTracker, result: ConfirmationResult, attempts: int) -> str:
        if result.is_failed:
            tracker.transition(SubmissionState.FAILED)
            raise OnChainExecutionError(result.signature, result.reason or "unknown")

        tracker.transition(SubmissionState.CONFIRMED)
        logger.info(f"TX_LANDED | sig={result.signature} | attempts={attempts} | source={result.source}")
        return result.signature

    async def _read_height(self, previous: Optional[int]) -> Optional[int]:
        try:
            return await self.chain.get_block_height()
        except TransientNetworkError as e:
            logger.warning(f"BLOCK_HEIGHT | read failed, keeping {previous} | {e}")
            return previous


def _window_closed(tx: UnsignedTransaction, height: Optional[int]) -> bool:
    if height is None or tx.last_valid_block_height is None:
        return False
    return height >= tx.last_valid_block_height
