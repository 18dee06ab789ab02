"""Stellar/Soroban integration - reward distribution."""

from proofdrop.stellar.distributor import SorobanRewardDistributor

__all__ = ["SorobanRewardDistributor"]
