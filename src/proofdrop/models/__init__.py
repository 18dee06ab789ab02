"""Data models for the proofdrop reward service."""

from proofdrop.models.records import (
    ActivityRecord,
    ClaimResult,
    DistributionResult,
    StatusSummary,
    SubmissionRecord,
    SubmissionStatus,
)
from proofdrop.models.config import ServiceConfig
from proofdrop.models.snapshots import (
    ActivityEntry,
    ApprovedEntry,
    SubmissionSnapshot,
)

__all__ = [
    "ActivityRecord", "ClaimResult", "DistributionResult", "StatusSummary",
    "SubmissionRecord", "SubmissionStatus",
    "ServiceConfig",
    "ActivityEntry", "ApprovedEntry", "SubmissionSnapshot",
]
