from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..domain.commitment import Commitment


@dataclass(frozen=True)
class SignatureStatus:
    """Entry from getSignatureStatuses."""

    signature: str
    slot: Optional[int]
    err: Optional[str]
    confirmation_status: Optional[Commitment]


@dataclass(frozen=True)
class SignatureRecord:
    """Entry from getSignaturesForAddress."""

    signature: str
    slot: Optional[int]
    err: Optional[str]
    confirmation_status: Optional[Commitment]


class ChainPort(ABC):
    """
    RPC surface used by the transaction-reliability layer.

    Implementations raise TransientNetworkError for any single-call failure.
    """

    @abstractmethod
    async def get_block_height(self) -> int:
        ...

    @abstractmethod
    async def send_raw_transaction(self, raw: bytes, skip_preflight: bool = True) -> str:
        ...

    @abstractmethod
    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        """Status with searchTransactionHistory enabled; None if unknown."""
        ...

    @abstractmethod
    async def get_signatures_for_address(
        self,
        address: str,
        until: Optional[str] = None,
        limit: int = 100,
    ) -> List[SignatureRecord]:
        ...

    @abstractmethod
    async def get_native_balance(self, owner: str) -> int:
        """Balance in lamports."""
        ...

    @abstractmethod
    async def get_token_balance_raw(self, owner: str, mint: str) -> int:
        """Sum of all token accounts of `owner` for `mint`, in raw units."""
        ...

    @abstractmethod
    async def get_token_balances_raw(self, owner: str) -> Dict[str, int]:
        """mint -> raw amount for every SPL token account of `owner`."""
        ...

    @abstractmethod
    async def get_transaction_fee(self, signature: str) -> Optional[int]:
        """Fee paid in lamports, or None if the transaction is not yet readable."""
        ...

    async def close(self) -> None:
        return None
