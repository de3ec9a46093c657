"""
errors.py - Error taxonomy for the transaction-reliability layer

Propagation policy:
- TransientNetworkError is absorbed as low as possible (fee fallback, next
  retry iteration, PENDING confirmation). Callers never see it from submit().
- ExpirationError and OnChainExecutionError are terminal and propagate to the
  caller immediately.
"""

from __future__ import annotations

from typing import Optional


class LiqgateError(Exception):
    """Base class for all liqgate errors."""


class TransientNetworkError(LiqgateError):
    """A single RPC call failed (timeout, 5xx, connection reset, bad payload)."""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method


class SchemaMismatchError(LiqgateError):
    """A response or record does not match its declared shape."""


class ExpirationError(LiqgateError):
    """The block-height validity window closed without a confirmation."""

    def __init__(
        self,
        signature: Optional[str],
        last_valid_block_height: Optional[int],
        observed_height: Optional[int],
    ):
        super().__init__(
            "Transaction could not be confirmed within the valid block height range "
            f"(sig={signature}, last_valid={last_valid_block_height}, observed={observed_height})"
        )
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height
        self.observed_height = observed_height


class OnChainExecutionError(LiqgateError):
    """The transaction was included but the runtime reported an execution error."""

    def __init__(self, signature: str, reason: str):
        super().__init__(f"Transaction failed with error: {reason} (sig={signature})")
        self.signature = signature
        self.reason = reason


class PositionNotFoundError(LiqgateError, LookupError):
    """No position with the given address is owned by the wallet."""

    def __init__(self, position_address: str):
        super().__init__(f"Position not found: {position_address}")
        self.position_address = position_address


__all__ = [
    "LiqgateError",
    "TransientNetworkError",
    "SchemaMismatchError",
    "ExpirationError",
    "OnChainExecutionError",
    "PositionNotFoundError",
]
