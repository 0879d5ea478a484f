"""Persistence service access."""

from study_tracker.remote.base import RemoteStore
from study_tracker.remote.client import SupabaseStore

__all__ = ["RemoteStore", "SupabaseStore"]
