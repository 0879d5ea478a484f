"""
Mapping between flat remote records and the in-memory hierarchy.

Subject records: {id, key, label, icon, sort_order}
Row records:     {id, subject_id, name, rounds, sort_order}

The load is a two-pass join: build a remote id -> key table from the
subject records, then fold every row record into its subject's bucket.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from study_tracker.tracker.models import (
    TOTAL_ROUNDS,
    RoundData,
    RowData,
    SubjectData,
    SubjectInfo,
    empty_rounds,
    slugify,
)

Record = Mapping[str, Any]


# =============================================================================
# Rounds
# =============================================================================


def _coerce_round(entry: Any) -> RoundData:
    if not isinstance(entry, Mapping):
        return RoundData()
    return RoundData(mcq=bool(entry.get("mcq")), essay=bool(entry.get("essay")))


def normalize_rounds(raw: Any, total_rounds: int = TOTAL_ROUNDS) -> tuple[RoundData, ...]:
    """
    Turn a stored rounds value into exactly `total_rounds` rounds or more.

    Missing or malformed values become fresh all-false rounds. Short lists
    are right-padded with all-false rounds. Long lists are kept whole.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return empty_rounds(total_rounds)

    if not isinstance(raw, list):
        return empty_rounds(total_rounds)

    rounds = [_coerce_round(entry) for entry in raw]
    if len(rounds) < total_rounds:
        rounds.extend(RoundData() for _ in range(total_rounds - len(rounds)))
    return tuple(rounds)


def rounds_payload(rounds: Iterable[RoundData]) -> list[dict[str, bool]]:
    """Serialize rounds for the row collection."""
    return [r.to_dict() for r in rounds]


# =============================================================================
# Records -> Hierarchy
# =============================================================================


def subject_from_record(record: Record) -> SubjectInfo:
    label = str(record.get("label") or "")
    return SubjectInfo(
        key=str(record.get("key") or slugify(label)),
        label=label,
        icon=str(record.get("icon") or ""),
        remote_id=str(record["id"]),
    )


def row_from_record(record: Record, total_rounds: int = TOTAL_ROUNDS) -> RowData:
    return RowData(
        id=str(record["id"]),
        name=str(record.get("name") or ""),
        rounds=normalize_rounds(record.get("rounds"), total_rounds),
    )


def _has_id(record: Any) -> bool:
    return isinstance(record, dict) and record.get("id") is not None


def build_hierarchy(
    subject_records: Iterable[Record],
    row_records: Iterable[Record],
    total_rounds: int = TOTAL_ROUNDS,
) -> tuple[list[SubjectInfo], dict[str, SubjectData]]:
    """
    Join flat records into (subjects, data).

    Record order is kept as given; the remote list calls already return
    records by sort position. Records without an id, and rows whose
    subject_id matches no subject, are dropped.
    """
    subjects: list[SubjectInfo] = []
    key_by_remote_id: dict[str, str] = {}
    buckets: dict[str, list[RowData]] = {}
    skipped = 0

    # Pass 1: subjects and the id -> key table
    for record in subject_records:
        if not _has_id(record):
            skipped += 1
            continue
        info = subject_from_record(record)
        if info.key in buckets:
            logger.warning("Duplicate subject key {} in remote data, keeping the first", info.key)
            continue
        subjects.append(info)
        key_by_remote_id[info.remote_id] = info.key
        buckets[info.key] = []

    # Pass 2: rows folded into their subject
    dropped = 0
    for record in row_records:
        if not _has_id(record):
            skipped += 1
            continue
        key = key_by_remote_id.get(str(record.get("subject_id")))
        if key is None:
            dropped += 1
            continue
        buckets[key].append(row_from_record(record, total_rounds))

    if dropped:
        logger.debug("Dropped {} rows with no matching subject", dropped)
    if skipped:
        logger.debug("Skipped {} records without an id", skipped)

    data = {key: SubjectData(rows=tuple(rows)) for key, rows in buckets.items()}
    return subjects, data


# =============================================================================
# Hierarchy -> Records
# =============================================================================


def subject_record(info: SubjectInfo, sort_order: int) -> dict[str, Any]:
    """Insert payload for a subject."""
    return {
        "key": info.key,
        "label": info.label,
        "icon": info.icon,
        "sort_order": sort_order,
    }


def row_record(row: RowData, subject_id: str, sort_order: int) -> dict[str, Any]:
    """Insert payload for a row."""
    return {
        "subject_id": subject_id,
        "name": row.name,
        "rounds": rounds_payload(row.rounds),
        "sort_order": sort_order,
    }
