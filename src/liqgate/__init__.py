"""liqgate - transaction-reliability layer for a Solana liquidity connector."""

__version__ = "0.1.0"

from .errors import (
    ExpirationError,
    LiqgateError,
    OnChainExecutionError,
    PositionNotFoundError,
    SchemaMismatchError,
    TransientNetworkError,
)
from .domain import Commitment, ConfirmationResult, ConfirmationState, FeeEstimate
from .engines.execution import (
    BalanceDeltaObserver,
    ConfirmationOracle,
    FeeEstimator,
    SolanaRpcGateway,
    TransactionSubmitter,
    UnsignedTransaction,
)
from .application import ConnectorRuntime, LiquidityService, PoolRegistry
from .config import Settings, TokenRegistry

__all__ = [
    "__version__",
    "ExpirationError",
    "LiqgateError",
    "OnChainExecutionError",
    "PositionNotFoundError",
    "SchemaMismatchError",
    "TransientNetworkError",
    "Commitment",
    "ConfirmationResult",
    "ConfirmationState",
    "FeeEstimate",
    "BalanceDeltaObserver",
    "ConfirmationOracle",
    "FeeEstimator",
    "SolanaRpcGateway",
    "TransactionSubmitter",
    "UnsignedTransaction",
    "ConnectorRuntime",
    "LiquidityService",
    "PoolRegistry",
    "Settings",
    "TokenRegistry",
]
