from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ...errors import LiqgateError


class SubmissionState(Enum):
    BUILDING = "building"
    FEE_ATTACHED = "fee_attached"
    SENDING = "sending"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {SubmissionState.CONFIRMED, SubmissionState.EXPIRED, SubmissionState.FAILED}
)


class InvalidTransition(LiqgateError):
    """Raised when an invalid submission state transition is attempted."""


TRANSITIONS: Dict[SubmissionState, Set[SubmissionState]] = {
    SubmissionState.BUILDING: {SubmissionState.FEE_ATTACHED},
    SubmissionState.FEE_ATTACHED: {SubmissionState.SENDING, SubmissionState.EXPIRED},
    SubmissionState.SENDING: {SubmissionState.AWAITING_CONFIRMATION},
    SubmissionState.AWAITING_CONFIRMATION: {
        SubmissionState.SENDING,
        SubmissionState.CONFIRMED,
        SubmissionState.FAILED,
        SubmissionState.EXPIRED,
    },
}


@dataclass
class SubmissionTracker:
    """Tracks one transaction's submission lifecycle with explicit transition rules."""

    state: SubmissionState = SubmissionState.BUILDING
    signature: Optional[str] = None
    history: List[Tuple[SubmissionState, datetime]] = field(default_factory=list)

    def __post_init__(self):
        if not self.history:
            self.history.append((self.state, datetime.now(timezone.utc)))

    def can_transition(self, to_state: SubmissionState) -> bool:
        return to_state in TRANSITIONS.get(self.state, set())

    def transition(self, to_state: SubmissionState) -> SubmissionState:
        """Execute state transition."""
        if not self.can_transition(to_state):
            raise InvalidTransition(f"{self.state.name} -> {to_state.name}")
        self.state = to_state
        self.history.append((to_state, datetime.now(timezone.utc)))
        return to_state

    @property
    def sends(self) -> int:
        return sum(1 for state, _ in self.history if state is SubmissionState.SENDING)
