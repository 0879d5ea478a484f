"""
Progress calculations.

Pure functions over the hierarchy. Every row contributes
`total_rounds * 2` possible flags; percentages are rounded half-up.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from study_tracker.tracker.models import TOTAL_ROUNDS, SubjectData, SubjectInfo


def percent(done: int, total: int) -> int:
    """Integer percentage rounded half-up; 0 when there is nothing to do."""
    if total <= 0:
        return 0
    # floor(done / total * 100 + 0.5) without float error
    return (200 * done + total) // (2 * total)


def subject_counts(data: SubjectData, total_rounds: int = TOTAL_ROUNDS) -> tuple[int, int]:
    """Return (flags set, flags possible) for one subject."""
    total = len(data.rows) * total_rounds * 2
    done = sum(row.done for row in data.rows)
    return done, total


def subject_progress(data: SubjectData, total_rounds: int = TOTAL_ROUNDS) -> int:
    """Percentage of flags set across all rows and rounds of a subject."""
    return percent(*subject_counts(data, total_rounds))


def total_progress(
    subjects: Iterable[SubjectInfo],
    data: Mapping[str, SubjectData],
    total_rounds: int = TOTAL_ROUNDS,
) -> int:
    """
    Percentage across every subject that has data.

    Subjects missing from `data` are skipped entirely, they do not add to
    the denominator.
    """
    done = total = 0
    for subject in subjects:
        subject_data = data.get(subject.key)
        if subject_data is None:
            continue
        d, t = subject_counts(subject_data, total_rounds)
        done += d
        total += t
    return percent(done, total)


def round_progress(data: SubjectData, round_index: int) -> int:
    """Percentage of flags set in one round column across all rows."""
    total = done = 0
    for row in data.rows:
        if round_index < len(row.rounds):
            done += row.rounds[round_index].done
        total += 2
    return percent(done, total)
