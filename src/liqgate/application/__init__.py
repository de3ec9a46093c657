from .pool_registry import PoolRegistry
from .liquidity_service import LiquidityService
from .runtime import ConnectorRuntime

__all__ = ["PoolRegistry", "LiquidityService", "ConnectorRuntime"]
