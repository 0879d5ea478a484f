"""Revision progress hierarchy and its optimistic state engine."""

from study_tracker.tracker.engine import StudyTracker
from study_tracker.tracker.errors import (
    ImportSourceError,
    LoadFailure,
    RemoteStoreError,
    TrackerError,
    ValidationRejection,
    WriteFailure,
)
from study_tracker.tracker.hierarchy import build_hierarchy, normalize_rounds
from study_tracker.tracker.models import (
    TOTAL_ROUNDS,
    RoundData,
    RowData,
    SubjectData,
    SubjectInfo,
    TrackerSnapshot,
    slugify,
)
from study_tracker.tracker.notifications import Notice, NoticeCollector, log_notice
from study_tracker.tracker.progress import subject_progress, total_progress

__all__ = [
    "StudyTracker",
    # Model
    "TOTAL_ROUNDS",
    "RoundData",
    "RowData",
    "SubjectData",
    "SubjectInfo",
    "TrackerSnapshot",
    "slugify",
    # Load & progress
    "build_hierarchy",
    "normalize_rounds",
    "subject_progress",
    "total_progress",
    # Errors & notices
    "TrackerError",
    "RemoteStoreError",
    "LoadFailure",
    "WriteFailure",
    "ValidationRejection",
    "ImportSourceError",
    "Notice",
    "NoticeCollector",
    "log_notice",
]
