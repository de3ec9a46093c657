"""
Keypair loading.

ACCEPTS:
- a JSON file holding the 64-byte secret key as an int array (solana-keygen format)
- a base58 string decoding to exactly 64 bytes (Phantom export format)

Policy:
- NEVER LOG: the key bytes or decoded value
- Raise ValueError on any validation failure; the caller decides whether to exit
"""

from __future__ import annotations

import json
import os

import base58
from solders.keypair import Keypair

B58_CHARS = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


def load_keypair(source: str) -> Keypair:
    """Load a keypair from a wallet JSON path or a base58 secret key."""
    if not source or not isinstance(source, str):
        raise ValueError("wallet source is empty or not set")

    source = source.strip()
    if os.path.exists(source):
        return load_keypair_file(source)
    if source.endswith(".json"):
        raise ValueError(f"Wallet file not found: {source}")
    return keypair_from_base58(source)


def load_keypair_file(path: str) -> Keypair:
    try:
        with open(path, "r", encoding="utf-8") as f:
            secret = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to load wallet JSON: {e}") from e

    if not isinstance(secret, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in secret):
        raise ValueError("Wallet JSON must be an array of byte values")
    return _from_bytes(bytes(secret))


def keypair_from_base58(private_key_b58: str) -> Keypair:
    if not all(c in B58_CHARS for c in private_key_b58):
        raise ValueError("private key contains invalid characters (must be base58)")
    try:
        key_bytes = base58.b58decode(private_key_b58)
    except ValueError as e:
        raise ValueError(f"Failed to decode private key as base58: {e}") from e
    return _from_bytes(key_bytes)


def _from_bytes(key_bytes: bytes) -> Keypair:
    if len(key_bytes) != 64:
        raise ValueError(f"secret key decoded to {len(key_bytes)} bytes, expected 64")
    try:
        return Keypair.from_bytes(key_bytes)
    except Exception as e:
        raise ValueError(f"Failed to create keypair: {e}") from e
