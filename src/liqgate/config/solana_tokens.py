"""
Solana token metadata for the liquidity connector.

Token lists are validated once here, at load time; everything downstream works
with typed SolanaToken records. Accepted file shapes:

    [{"address": ..., "symbol": ..., "name": ..., "decimals": ...}, ...]
    {"content": [ ...same entries... ]}

`mint` is accepted as an alias for `address`.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from loguru import logger

from ..errors import SchemaMismatchError


@dataclass(frozen=True)
class SolanaToken:
    symbol: str
    mint: str
    decimals: int
    name: str = ""

    def __post_init__(self):
        if not self.symbol:
            raise SchemaMismatchError("token symbol is empty")
        if not self.mint:
            raise SchemaMismatchError(f"token {self.symbol} has no mint")
        if not 0 <= self.decimals <= 18:
            raise SchemaMismatchError(f"token {self.symbol} has invalid decimals {self.decimals}")


# NOTE: Mint addresses are the widely used mainnet mints; verify before live.
SOL = SolanaToken(symbol="SOL", mint="So11111111111111111111111111111111111111112", decimals=9, name="Wrapped SOL")
USDC = SolanaToken(symbol="USDC", mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", decimals=6, name="USD Coin")
USDT = SolanaToken(symbol="USDT", mint="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", decimals=6, name="USDT")
BONK = SolanaToken(symbol="BONK", mint="DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", decimals=5, name="Bonk")
JUP = SolanaToken(symbol="JUP", mint="JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", decimals=6, name="Jupiter")
WIF = SolanaToken(symbol="WIF", mint="EPeUqhKcq7rVap5mpQxb38nSxr2idKdvUSsfx8bVsgcG", decimals=6, name="dogwifhat")

BUILTIN_TOKENS: List[SolanaToken] = [SOL, USDC, USDT, BONK, JUP, WIF]


class TokenRegistry:
    """Symbol/mint lookup over a fixed set of tokens."""

    def __init__(self, tokens: Iterable[SolanaToken]):
        self._by_symbol: Dict[str, SolanaToken] = {}
        self._by_mint: Dict[str, SolanaToken] = {}
        for token in tokens:
            # later entries win, so file tokens can override built-ins
            self._by_symbol[token.symbol.upper()] = token
            self._by_mint[token.mint] = token

    @classmethod
    def builtin(cls) -> "TokenRegistry":
        return cls(BUILTIN_TOKENS)

    @classmethod
    def from_file(cls, path: str, include_builtin: bool = False) -> "TokenRegistry":
        """Load and validate a token list file. Raises SchemaMismatchError on bad entries."""
        if not os.path.exists(path):
            raise ValueError(f"Token list not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise SchemaMismatchError(f"token list {path} is not valid JSON: {e}") from e

        tokens = parse_token_list(data)
        if include_builtin:
            tokens = BUILTIN_TOKENS + tokens
        logger.info(f"TOKEN_LIST | loaded | path={path} | tokens={len(tokens)}")
        return cls(tokens)

    def get_token(self, symbol: str) -> SolanaToken:
        return self.by_symbol(symbol)

    def by_symbol(self, symbol: str) -> SolanaToken:
        key = symbol.upper()
        if key not in self._by_symbol:
            raise KeyError(f"Token not configured: {symbol}")
        return self._by_symbol[key]

    def by_mint(self, mint: str) -> SolanaToken:
        if mint not in self._by_mint:
            raise KeyError(f"Token not found in the token list: {mint}")
        return self._by_mint[mint]

    def find_mint(self, mint: str) -> Optional[SolanaToken]:
        return self._by_mint.get(mint)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._by_symbol

    def __iter__(self) -> Iterator[SolanaToken]:
        return iter(self._by_symbol.values())

    def __len__(self) -> int:
        return len(self._by_symbol)


def parse_token_list(data: Any) -> List[SolanaToken]:
    if isinstance(data, dict):
        data = data.get("content")
    if not isinstance(data, list):
        raise SchemaMismatchError("token list must be a list or an object with a 'content' list")
    return [_parse_entry(i, entry) for i, entry in enumerate(data)]


def _parse_entry(index: int, entry: Any) -> SolanaToken:
    if not isinstance(entry, dict):
        raise SchemaMismatchError(f"token list entry {index} is not an object")
    mint = entry.get("address") or entry.get("mint")
    symbol = entry.get("symbol")
    decimals = entry.get("decimals")
    if not isinstance(mint, str) or not isinstance(symbol, str):
        raise SchemaMismatchError(f"token list entry {index} is missing address/symbol: {entry}")
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise SchemaMismatchError(f"token list entry {index} ({symbol}) has non-integer decimals")
    return SolanaToken(symbol=symbol, mint=mint, decimals=decimals, name=str(entry.get("name") or symbol))


_DEFAULT_REGISTRY = TokenRegistry.builtin()


def get_token(symbol: str) -> SolanaToken:
    return _DEFAULT_REGISTRY.by_symbol(symbol)


__all__ = [
    "SolanaToken",
    "SOL",
    "USDC",
    "USDT",
    "BONK",
    "JUP",
    "WIF",
    "BUILTIN_TOKENS",
    "TokenRegistry",
    "parse_token_list",
    "get_token",
]
