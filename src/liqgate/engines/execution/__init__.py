from .transaction import SignedTransaction, UnsignedTransaction
from .fee_estimator import FeeEstimator, FeeEstimatorConfig, derive_tiers
from .confirmation_oracle import ConfirmationOracle
from .submission_state import InvalidTransition, SubmissionState, SubmissionTracker
from .transaction_submitter import TransactionSubmitter
from .balance_observer import BalanceDeltaObserver
from .solana_rpc import SolanaRpcGateway

__all__ = [
    "SignedTransaction",
    "UnsignedTransaction",
    "FeeEstimator",
    "FeeEstimatorConfig",
    "derive_tiers",
    "ConfirmationOracle",
    "InvalidTransition",
    "SubmissionState",
    "SubmissionTracker",
    "TransactionSubmitter",
    "BalanceDeltaObserver",
    "SolanaRpcGateway",
]
