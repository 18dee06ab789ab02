"""Wallet address canonicalization."""

from __future__ import annotations

from proofdrop.errors import InvalidAddressError


def normalize_wallet(raw: object) -> str:
    """Return the canonical key for a user-supplied wallet address.

    Trims surrounding whitespace and folds to lower case, so ``" 0xABC"`` and
    ``"0xabc"`` identify the same submission. Format is not validated beyond
    that: the address family is the reward contract's concern.
    """
    if not isinstance(raw, str):
        raise InvalidAddressError("Invalid wallet address")
    wallet = raw.strip().lower()
    if not wallet:
        raise InvalidAddressError("Invalid wallet address")
    return wallet
