"""
solana_rpc.py - ChainPort implementation over solana-py's AsyncClient

Every call goes through _call(), which turns any client/transport exception
into TransientNetworkError. Callers decide whether to absorb it.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import TOKEN_PROGRAM_ID

from ...domain.commitment import Commitment
from ...errors import SchemaMismatchError, TransientNetworkError
from ...ports.chain import ChainPort, SignatureRecord, SignatureStatus

T = TypeVar("T")


class SolanaRpcGateway(ChainPort):
    """
    Thin, typed wrapper over AsyncClient.

    The client is created lazily and can be injected for tests.
    """

    def __init__(
        self,
        rpc_url: str,
        client: Optional[AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client: Optional[AsyncClient] = client

    async def _get_client(self) -> AsyncClient:
        """Get or create RPC client."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_url, commitment=Confirmed, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close RPC client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _call(self, method: str, fn: Callable[[AsyncClient], Awaitable[T]]) -> T:
        client = await self._get_client()
        try:
            return await fn(client)
        except Exception as e:
            logger.debug(f"RPC_ERROR | method={method} | {type(e).__name__}: {e}")
            raise TransientNetworkError(method, f"{type(e).__name__}: {e}") from e

    # =========================================================================
    # CHAIN STATE
    # =========================================================================

    async def get_block_height(self) -> int:
        resp = await self._call("getBlockHeight", lambda c: c.get_block_height())
        return int(resp.value)

    async def send_raw_transaction(self, raw: bytes, skip_preflight: bool = True) -> str:
        opts = TxOpts(skip_preflight=skip_preflight, skip_confirmation=True)
        resp = await self._call("sendTransaction", lambda c: c.send_raw_transaction(raw, opts=opts))
        if getattr(resp, "value", None) is None:
            raise TransientNetworkError("sendTransaction", "no_signature_returned")
        return str(resp.value)

    # =========================================================================
    # SIGNATURE STATUS
    # =========================================================================

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        sig = Signature.from_string(signature)
        resp = await self._call(
            "getSignatureStatuses",
            lambda c: c.get_signature_statuses([sig], search_transaction_history=True),
        )
        if not resp.value or resp.value[0] is None:
            return None

        status = resp.value[0]
        return SignatureStatus(
            signature=signature,
            slot=getattr(status, "slot", None),
            err=_err_str(status.err),
            confirmation_status=Commitment.parse(status.confirmation_status),
        )

    async def get_signatures_for_address(
        self,
        address: str,
        until: Optional[str] = None,
        limit: int = 100,
    ) -> List[SignatureRecord]:
        account = Pubkey.from_string(address)
        until_sig = Signature.from_string(until) if until else None
        resp = await self._call(
            "getSignaturesForAddress",
            lambda c: c.get_signatures_for_address(account, until=until_sig, limit=limit),
        )
        return [
            SignatureRecord(
                signature=str(entry.signature),
                slot=getattr(entry, "slot", None),
                err=_err_str(entry.err),
                confirmation_status=Commitment.parse(entry.confirmation_status),
            )
            for entry in (resp.value or [])
        ]

    async def get_transaction_fee(self, signature: str) -> Optional[int]:
        sig = Signature.from_string(signature)
        resp = await self._call(
            "getTransaction",
            lambda c: c.get_transaction(sig, max_supported_transaction_version=0),
        )
        if resp.value is None:
            return None
        meta = resp.value.transaction.meta
        if meta is None:
            return None
        return int(meta.fee)

    # =========================================================================
    # BALANCE OPERATIONS
    # =========================================================================

    async def get_native_balance(self, owner: str) -> int:
        pubkey = Pubkey.from_string(owner)
        resp = await self._call("getBalance", lambda c: c.get_balance(pubkey))
        return int(resp.value)

    async def get_token_balance_raw(self, owner: str, mint: str) -> int:
        pubkey = Pubkey.from_string(owner)
        opts = TokenAccountOpts(mint=Pubkey.from_string(mint))
        resp = await self._call(
            "getTokenAccountsByOwner",
            lambda c: c.get_token_accounts_by_owner_json_parsed(pubkey, opts),
        )
        # Sum all token accounts for this mint
        total = 0
        for account in resp.value or []:
            _, amount = _parse_token_account(account)
            total += amount
        return total

    async def get_token_balances_raw(self, owner: str) -> Dict[str, int]:
        pubkey = Pubkey.from_string(owner)
        opts = TokenAccountOpts(program_id=TOKEN_PROGRAM_ID)
        resp = await self._call(
            "getTokenAccountsByOwner",
            lambda c: c.get_token_accounts_by_owner_json_parsed(pubkey, opts),
        )
        balances: Dict[str, int] = {}
        for account in resp.value or []:
            mint, amount = _parse_token_account(account)
            balances[mint] = balances.get(mint, 0) + amount
        return balances


def _err_str(err: Any) -> Optional[str]:
    return None if err is None else str(err)


def _parse_token_account(account: Any) -> tuple:
    """(mint, raw_amount) from a jsonParsed token account."""
    data = account.account.data
    parsed = getattr(data, "parsed", None)
    if not isinstance(parsed, dict):
        raise SchemaMismatchError("token account is not jsonParsed")
    info = parsed.get("info", {})
    mint = info.get("mint")
    amount = info.get("tokenAmount", {}).get("amount")
    if not mint or amount is None:
        raise SchemaMismatchError(f"token account missing mint/amount: {info}")
    return mint, int(amount)
