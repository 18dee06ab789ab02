"""proofdrop - proof-of-learning submissions with on-chain token rewards."""

__version__ = "0.1.0"
