"""Lifecycle rules - wallet canonicalization and status transitions."""

from proofdrop.lifecycle.state_machine import (
    Intent,
    is_terminal,
    next_status,
    source_states,
    target_state,
)
from proofdrop.lifecycle.wallet import normalize_wallet

__all__ = [
    "Intent", "is_terminal", "next_status", "source_states", "target_state",
    "normalize_wallet",
]
