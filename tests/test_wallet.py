"""Wallet address canonicalization."""

from __future__ import annotations

import pytest

from proofdrop.errors import InvalidAddressError, ValidationError
from proofdrop.lifecycle.wallet import normalize_wallet


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0xABC", "0xabc"),
        ("0xabc ", "0xabc"),
        ("  GDNAG4KFFVF5HCSG\t", "gdnag4kffvf5hcsg"),
        ("already-canonical", "already-canonical"),
    ],
)
def test_normalize_trims_and_lowercases(raw, expected):
    assert normalize_wallet(raw) == expected


def test_normalize_is_idempotent():
    once = normalize_wallet(" 0xAbC ")
    assert normalize_wallet(once) == once


@pytest.mark.parametrize("raw", ["", "   ", None, 42, ["0xabc"]])
def test_normalize_rejects_empty_and_non_strings(raw):
    with pytest.raises(InvalidAddressError) as exc_info:
        normalize_wallet(raw)
    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.message == "Invalid wallet address"
