"""Reward claim coordination."""

from proofdrop.claims.coordinator import ClaimCoordinator
from proofdrop.claims.lease import ClaimLeaseRegistry

__all__ = ["ClaimCoordinator", "ClaimLeaseRegistry"]
