"""
confirmation_oracle.py - Confirm a signature across two read paths

A single RPC node's signature-status index is not always consistent with its
transaction-history index, so either path reporting success is authoritative:

1. Direct lookup: getSignatureStatuses(searchTransactionHistory=true)
2. Reverse lookup: getSignaturesForAddress(fee_payer, until=signature)

A non-null on-chain error on either path is terminal FAILED. Read errors on a
path are absorbed; if neither path is conclusive the result is PENDING.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Optional, Union

from loguru import logger

from ...domain.commitment import Commitment
from ...domain.confirmation import ConfirmationResult, ConfirmationState
from ...errors import TransientNetworkError
from ...ports.chain import ChainPort, SignatureRecord, SignatureStatus


class ConfirmationOracle:
    def __init__(
        self,
        chain: ChainPort,
        default_address: Optional[str] = None,
        history_limit: int = 100,
        memo_size: int = 1024,
    ):
        if memo_size < 1:
            raise ValueError(f"memo_size must be >= 1, got {memo_size}")
        self.chain = chain
        self.default_address = default_address
        self.history_limit = history_limit
        self.memo_size = memo_size
        # most recently used last; oldest evicted past memo_size
        self._terminal: "OrderedDict[str, ConfirmationResult]" = OrderedDict()

    async def check(
        self,
        signature: str,
        commitment: Commitment = Commitment.CONFIRMED,
        address: Optional[str] = None,
    ) -> ConfirmationResult:
        """
        Current confirmation state of `signature` at the requested commitment.

        Args:
            signature: base58 transaction signature
            commitment: minimum level that counts as confirmed
            address: fee payer for the reverse lookup (defaults to the wallet)
        """
        cached = self._cached(signature, commitment)
        if cached is not None:
            return cached

        direct = await self._check_status(signature, commitment)
        if direct.is_terminal:
            return self._remember(direct)

        address = address or self.default_address
        if address:
            reverse = await self._check_history(signature, commitment, address)
            if reverse.is_terminal:
                return self._remember(reverse)

        return ConfirmationResult.pending(signature)

    # =========================================================================
    # READ PATHS
    # =========================================================================

    async def _check_status(self, signature: str, commitment: Commitment) -> ConfirmationResult:
        try:
            status = await self.chain.get_signature_status(signature)
        except TransientNetworkError as e:
            logger.warning(f"CONFIRM_STATUS | read failed | sig={signature[:16]}... | {e}")
            return ConfirmationResult.pending(signature)

        if status is None:
            return ConfirmationResult.pending(signature)
        return _classify(signature, status, commitment, source="status")

    async def _check_history(
        self,
        signature: str,
        commitment: Commitment,
        address: str,
    ) -> ConfirmationResult:
        try:
            records = await self.chain.get_signatures_for_address(
                address, until=signature, limit=self.history_limit
            )
        except TransientNetworkError as e:
            logger.warning(f"CONFIRM_HISTORY | read failed | sig={signature[:16]}... | {e}")
            return ConfirmationResult.pending(signature)

        for record in records:
            if record.signature == signature:
                return _classify(signature, record, commitment, source="address")
        return ConfirmationResult.pending(signature)

    # =========================================================================
    # TERMINAL MEMO
    # =========================================================================

    def _cached(self, signature: str, commitment: Commitment) -> Optional[ConfirmationResult]:
        cached = self._terminal.get(signature)
        if cached is None:
            return None
        if cached.state is ConfirmationState.CONFIRMED and not _observed(cached).satisfies(commitment):
            # confirmed earlier, caller now wants a stronger level
            return None
        self._terminal.move_to_end(signature)
        return cached

    def _remember(self, result: ConfirmationResult) -> ConfirmationResult:
        self._terminal[result.signature] = result
        self._terminal.move_to_end(result.signature)
        while len(self._terminal) > self.memo_size:
            self._terminal.popitem(last=False)
        if result.is_failed:
            logger.error(f"TX_FAILED | sig={result.signature} | source={result.source} | error={result.reason}")
        else:
            logger.info(
                f"TX_{result.state.name} | sig={result.signature} | source={result.source} | "
                f"commitment={result.commitment.value if result.commitment else '-'}"
            )
        return result


def _observed(result: ConfirmationResult) -> Commitment:
    return result.commitment or Commitment.CONFIRMED


def _classify(
    signature: str,
    entry: Union[SignatureStatus, SignatureRecord],
    requested: Commitment,
    source: str,
) -> ConfirmationResult:
    if entry.err is not None:
        return ConfirmationResult(
            signature=signature,
            state=ConfirmationState.FAILED,
            commitment=entry.confirmation_status,
            reason=entry.err,
            source=source,
        )

    observed = entry.confirmation_status
    if observed is None or not observed.satisfies(requested):
        return ConfirmationResult.pending(signature)

    state = ConfirmationState.FINALIZED if observed is Commitment.FINALIZED else ConfirmationState.CONFIRMED
    return ConfirmationResult(signature=signature, state=state, commitment=observed, source=source)
