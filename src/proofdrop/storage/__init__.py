"""Persistence layer."""

from proofdrop.storage.sqlite import SQLiteSubmissionStore

__all__ = ["SQLiteSubmissionStore"]
