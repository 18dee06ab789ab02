"""Protocol interfaces for proofdrop components."""

from proofdrop.interfaces.distributor import RewardDistributor
from proofdrop.interfaces.store import SubmissionStore

__all__ = ["RewardDistributor", "SubmissionStore"]
