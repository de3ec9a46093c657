from types import SimpleNamespace

import pytest
from solders.pubkey import Pubkey
from solders.signature import Signature

from liqgate.domain.commitment import Commitment
from liqgate.engines.execution.solana_rpc import SolanaRpcGateway
from liqgate.errors import SchemaMismatchError, TransientNetworkError

SIG = str(Signature.default())
OWNER = str(Pubkey.new_unique())
MINT_A = str(Pubkey.new_unique())
MINT_B = str(Pubkey.new_unique())


def token_account(mint, amount):
    parsed = {"info": {"mint": mint, "tokenAmount": {"amount": str(amount), "decimals": 6}}}
    return SimpleNamespace(account=SimpleNamespace(data=SimpleNamespace(parsed=parsed)))


class FakeAsyncClient:
    def __init__(self, **responses):
        self.responses = responses
        self.calls = []
        self.closed = False

    def _respond(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        value = self.responses[name]
        if isinstance(value, Exception):
            raise value
        return SimpleNamespace(value=value)

    async def get_block_height(self):
        return self._respond("get_block_height")

    async def send_raw_transaction(self, raw, opts=None):
        return self._respond("send_raw_transaction", raw, opts=opts)

    async def get_signature_statuses(self, sigs, search_transaction_history=False):
        return self._respond("get_signature_statuses", sigs, search_transaction_history=search_transaction_history)

    async def get_signatures_for_address(self, account, until=None, limit=None):
        return self._respond("get_signatures_for_address", account, until=until, limit=limit)

    async def get_transaction(self, sig, max_supported_transaction_version=None):
        return self._respond("get_transaction", sig)

    async def get_balance(self, pubkey):
        return self._respond("get_balance", pubkey)

    async def get_token_accounts_by_owner_json_parsed(self, owner, opts):
        return self._respond("get_token_accounts_by_owner_json_parsed", owner, opts)

    async def close(self):
        self.closed = True


def gateway(**responses):
    client = FakeAsyncClient(**responses)
    return SolanaRpcGateway("https://rpc.test", client=client), client


@pytest.mark.anyio
async def test_block_height():
    gw, _ = gateway(get_block_height=123_456)

    assert await gw.get_block_height() == 123_456


@pytest.mark.anyio
async def test_client_errors_become_transient():
    gw, _ = gateway(get_block_height=ConnectionResetError("reset by peer"))

    with pytest.raises(TransientNetworkError) as exc:
        await gw.get_block_height()

    assert exc.value.method == "getBlockHeight"


@pytest.mark.anyio
async def test_send_skips_preflight_and_returns_signature():
    gw, client = gateway(send_raw_transaction=Signature.default())

    signature = await gw.send_raw_transaction(b"\x01\x02")

    assert signature == SIG
    opts = client.calls[0][2]["opts"]
    assert opts.skip_preflight is True


@pytest.mark.anyio
async def test_signature_status_parses_solders_commitment():
    status = SimpleNamespace(slot=9, err=None, confirmation_status="TransactionConfirmationStatus.Finalized")
    gw, client = gateway(get_signature_statuses=[status])

    result = await gw.get_signature_status(SIG)

    assert result.confirmation_status is Commitment.FINALIZED
    assert result.err is None
    assert client.calls[0][2]["search_transaction_history"] is True


@pytest.mark.anyio
async def test_unknown_signature_status_is_none():
    gw, _ = gateway(get_signature_statuses=[None])

    assert await gw.get_signature_status(SIG) is None


@pytest.mark.anyio
async def test_signatures_for_address_passes_until_and_limit():
    entry = SimpleNamespace(signature=Signature.default(), slot=3, err="InstructionError", confirmation_status="confirmed")
    gw, client = gateway(get_signatures_for_address=[entry])

    records = await gw.get_signatures_for_address(OWNER, until=SIG, limit=100)

    assert records[0].signature == SIG
    assert records[0].err == "InstructionError"
    assert records[0].confirmation_status is Commitment.CONFIRMED
    kwargs = client.calls[0][2]
    assert str(kwargs["until"]) == SIG
    assert kwargs["limit"] == 100


@pytest.mark.anyio
async def test_transaction_fee():
    tx = SimpleNamespace(transaction=SimpleNamespace(meta=SimpleNamespace(fee=5_000)))
    gw, _ = gateway(get_transaction=tx)

    assert await gw.get_transaction_fee(SIG) == 5_000


@pytest.mark.anyio
async def test_transaction_fee_unknown():
    gw, _ = gateway(get_transaction=None)

    assert await gw.get_transaction_fee(SIG) is None


@pytest.mark.anyio
async def test_token_balance_sums_accounts():
    gw, _ = gateway(get_token_accounts_by_owner_json_parsed=[token_account(MINT_A, 100), token_account(MINT_A, 50)])

    assert await gw.get_token_balance_raw(OWNER, MINT_A) == 150


@pytest.mark.anyio
async def test_token_balances_by_mint():
    accounts = [token_account(MINT_A, 100), token_account(MINT_B, 7), token_account(MINT_A, 1)]
    gw, _ = gateway(get_token_accounts_by_owner_json_parsed=accounts)

    assert await gw.get_token_balances_raw(OWNER) == {MINT_A: 101, MINT_B: 7}


@pytest.mark.anyio
async def test_unparsed_token_account_is_schema_mismatch():
    raw_account = SimpleNamespace(account=SimpleNamespace(data=b"\x00" * 165))
    gw, _ = gateway(get_token_accounts_by_owner_json_parsed=[raw_account])

    with pytest.raises(SchemaMismatchError):
        await gw.get_token_balances_raw(OWNER)


@pytest.mark.anyio
async def test_native_balance_and_close():
    gw, client = gateway(get_balance=2_000_000_000)

    assert await gw.get_native_balance(OWNER) == 2_000_000_000
    await gw.close()
    assert client.closed
