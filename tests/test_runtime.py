import json

import pytest
from loguru import logger
from solders.keypair import Keypair

from liqgate.application.runtime import ConnectorRuntime
from liqgate.config.settings import BalanceSettings, FeeSettings, Settings, SolanaSettings
from liqgate.engines.execution.solana_rpc import SolanaRpcGateway


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="INFO")
    yield messages
    logger.remove(handler_id)


def test_start_wires_components_from_settings(chain, payer):
    settings = Settings(
        fees=FeeSettings(tier="medium", min_fee_floor=250),
        balances=BalanceSettings(max_attempts=3, interval=0.1),
    )

    runtime = ConnectorRuntime.start(settings, keypair=payer, chain=chain)

    assert runtime.submitter.fee_tier == "medium"
    assert runtime.fee_estimator.config.min_fee_floor == 250
    assert runtime.fee_estimator.endpoint == "https://api.mainnet-beta.solana.com"
    assert runtime.oracle.default_address == str(payer.pubkey())
    assert runtime.oracle.memo_size == 1024
    assert runtime.observer.max_attempts == 3
    assert runtime.service.owner == str(payer.pubkey())


def test_banner_is_logged_once_per_runtime(chain, payer, log_messages):
    runtime = ConnectorRuntime.start(Settings(), keypair=payer, chain=chain)
    runtime.log_banner()
    runtime.log_banner()

    assert sum("CONNECTOR | init" in m for m in log_messages) == 1

    ConnectorRuntime.start(Settings(), keypair=payer, chain=chain)
    assert sum("CONNECTOR | init" in m for m in log_messages) == 2


def test_start_loads_wallet_and_token_list(tmp_path):
    kp = Keypair()
    wallet = tmp_path / "wallet.json"
    wallet.write_text(json.dumps(list(bytes(kp))), encoding="utf-8")
    tokens = tmp_path / "tokens.json"
    tokens.write_text(json.dumps([{"address": "MintAAA", "symbol": "AAA", "decimals": 6}]), encoding="utf-8")
    settings = Settings(
        solana=SolanaSettings(network="devnet", wallet_path=str(wallet), token_list_path=str(tokens))
    )

    runtime = ConnectorRuntime.start(settings)

    assert runtime.keypair.pubkey() == kp.pubkey()
    assert runtime.tokens.by_symbol("AAA").mint == "MintAAA"
    assert runtime.tokens.by_symbol("USDC").decimals == 6
    assert isinstance(runtime.chain, SolanaRpcGateway)
    assert runtime.chain.rpc_url == "https://api.devnet.solana.com"


def test_start_without_wallet_is_config_error():
    with pytest.raises(ValueError):
        ConnectorRuntime.start(Settings())


@pytest.mark.anyio
async def test_close_releases_clients(chain, payer):
    runtime = ConnectorRuntime.start(Settings(), keypair=payer, chain=chain)

    await runtime.close()

    assert chain.closed
