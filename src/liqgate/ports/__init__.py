from .chain import ChainPort, SignatureRecord, SignatureStatus
from .amm import LiquidityPoolPort, LiquidityProtocolPort, PreparedTransaction, SwapQuote

__all__ = [
    "ChainPort",
    "SignatureRecord",
    "SignatureStatus",
    "LiquidityPoolPort",
    "LiquidityProtocolPort",
    "PreparedTransaction",
    "SwapQuote",
]
