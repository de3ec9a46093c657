from .settings import Settings
from .solana_tokens import SolanaToken, TokenRegistry, get_token
from .wallet import load_keypair

__all__ = ["Settings", "SolanaToken", "TokenRegistry", "get_token", "load_keypair"]
