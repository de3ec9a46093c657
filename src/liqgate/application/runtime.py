"""
runtime.py - Process-level wiring of the connector

Built once at boot by ConnectorRuntime.start(); everything downstream receives
its collaborators from here instead of reading the environment again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger
from solders.keypair import Keypair

from ..config.settings import Settings
from ..config.solana_tokens import TokenRegistry
from ..config.wallet import load_keypair
from ..engines.execution.balance_observer import BalanceDeltaObserver
from ..engines.execution.confirmation_oracle import ConfirmationOracle
from ..engines.execution.fee_estimator import FeeEstimator, FeeEstimatorConfig
from ..engines.execution.solana_rpc import SolanaRpcGateway
from ..engines.execution.transaction_submitter import TransactionSubmitter
from ..ports.amm import LiquidityProtocolPort
from ..ports.chain import ChainPort
from .liquidity_service import LiquidityService


@dataclass
class ConnectorRuntime:
    settings: Settings
    keypair: Keypair
    tokens: TokenRegistry
    chain: ChainPort
    fee_estimator: FeeEstimator
    oracle: ConfirmationOracle
    submitter: TransactionSubmitter
    observer: BalanceDeltaObserver
    service: LiquidityService
    _banner_logged: bool = field(default=False, init=False, repr=False)

    @classmethod
    def start(
        cls,
        settings: Settings,
        protocol: Optional[LiquidityProtocolPort] = None,
        keypair: Optional[Keypair] = None,
        chain: Optional[ChainPort] = None,
    ) -> "ConnectorRuntime":
        """
        Build the connector from settings.

        `keypair` and `chain` may be injected; otherwise the wallet is loaded
        from solana.wallet_path and a SolanaRpcGateway is created.
        """
        sol = settings.solana
        if keypair is None:
            if not sol.wallet_path:
                raise ValueError("solana.wallet_path (or SOLANA_WALLET_JSON) is not set")
            keypair = load_keypair(sol.wallet_path)

        if sol.token_list_path:
            tokens = TokenRegistry.from_file(sol.token_list_path, include_builtin=True)
        else:
            tokens = TokenRegistry.builtin()

        rpc_url = sol.resolved_rpc_url
        if chain is None:
            chain = SolanaRpcGateway(rpc_url, timeout=sol.http_timeout)

        fees = settings.fees
        fee_estimator = FeeEstimator(
            rpc_url,
            FeeEstimatorConfig(
                fallback_low=fees.fallback_low,
                fallback_medium=fees.fallback_medium,
                fallback_high=fees.fallback_high,
                fallback_extreme=fees.fallback_extreme,
                min_fee_floor=fees.min_fee_floor,
                http_timeout=fees.http_timeout,
            ),
        )
        oracle = ConfirmationOracle(
            chain,
            default_address=str(keypair.pubkey()),
            history_limit=settings.submission.history_limit,
            memo_size=settings.submission.memo_size,
        )
        submitter = TransactionSubmitter(
            chain,
            fee_estimator,
            oracle,
            fee_tier=fees.tier,
            confirm_interval=settings.submission.confirm_interval,
            validity_window_blocks=settings.submission.validity_window_blocks,
            max_attempts=settings.submission.max_attempts,
        )
        observer = BalanceDeltaObserver(
            chain,
            tokens,
            max_attempts=settings.balances.max_attempts,
            interval=settings.balances.interval,
        )
        service = LiquidityService(keypair, chain, tokens, protocol, submitter, observer)

        runtime = cls(
            settings=settings,
            keypair=keypair,
            tokens=tokens,
            chain=chain,
            fee_estimator=fee_estimator,
            oracle=oracle,
            submitter=submitter,
            observer=observer,
            service=service,
        )
        runtime.log_banner()
        return runtime

    def log_banner(self) -> None:
        if self._banner_logged:
            return
        self._banner_logged = True
        logger.info(
            f"CONNECTOR | init | network={self.settings.solana.network} | "
            f"rpc={self.settings.solana.resolved_rpc_url} | wallet={str(self.keypair.pubkey())[:8]}... | "
            f"tokens={len(self.tokens)} | fee_tier={self.submitter.fee_tier}"
        )

    async def close(self) -> None:
        await self.fee_estimator.close()
        await self.chain.close()
        logger.info("CONNECTOR | closed")
