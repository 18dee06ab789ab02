"""HTTP surface and use-case service for the reward API."""

from proofdrop.api.http import create_app
from proofdrop.api.service import ModeratorGate, SubmissionService

__all__ = ["ModeratorGate", "SubmissionService", "create_app"]
