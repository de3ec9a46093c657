import json

import base58
import pytest
from solders.keypair import Keypair

from liqgate.config.wallet import keypair_from_base58, load_keypair


def test_load_keypair_from_json_array(tmp_path) -> None:
    kp = Keypair()
    path = tmp_path / "wallet.json"
    path.write_text(json.dumps(list(bytes(kp))), encoding="utf-8")

    loaded = load_keypair(str(path))

    assert loaded.pubkey() == kp.pubkey()


def test_load_keypair_from_base58() -> None:
    kp = Keypair()
    secret = base58.b58encode(bytes(kp)).decode()

    assert load_keypair(secret).pubkey() == kp.pubkey()


def test_missing_wallet_file_is_rejected(tmp_path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_keypair(str(tmp_path / "nope.json"))


def test_short_key_is_rejected() -> None:
    with pytest.raises(ValueError, match="expected 64"):
        keypair_from_base58(base58.b58encode(b"\x01" * 32).decode())


def test_non_base58_characters_are_rejected() -> None:
    with pytest.raises(ValueError, match="base58"):
        load_keypair("0OIl-not-a-key")


@pytest.mark.parametrize("content", ['{"secret": 1}', "[1, 2, 300]", "not json"])
def test_malformed_wallet_json_is_rejected(tmp_path, content) -> None:
    path = tmp_path / "wallet.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_keypair(str(path))


def test_empty_source_is_rejected() -> None:
    with pytest.raises(ValueError):
        load_keypair("")
