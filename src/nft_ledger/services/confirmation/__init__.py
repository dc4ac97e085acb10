"""Confirmation state machine."""

from nft_ledger.services.confirmation.state_machine import (
    ConfirmationStateMachine,
    TransitionOutcome,
    TransitionResult,
    apply_confirmations,
    apply_failure,
    apply_force_confirm,
)

__all__ = [
    "ConfirmationStateMachine",
    "TransitionOutcome",
    "TransitionResult",
    "apply_confirmations",
    "apply_failure",
    "apply_force_confirm",
]
