"""
Data model for the revision hierarchy.

subjects -> rows -> rounds -> (mcq, essay) flags.

All values are frozen dataclasses; the engine replaces whole subtrees
instead of editing fields in place, so a snapshot handed to a renderer
never changes underneath it.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

TOTAL_ROUNDS = 8

CheckField = Literal["mcq", "essay"]
CHECK_FIELDS: tuple[str, ...] = ("mcq", "essay")

_WHITESPACE = re.compile(r"\s+")
_INVALID_KEY_CHARS = re.compile(r"[^a-z0-9-]")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RoundData:
    """Completion flags for one repetition round."""

    mcq: bool = False
    essay: bool = False

    @property
    def done(self) -> int:
        """Number of flags set in this round (0-2)."""
        return int(self.mcq) + int(self.essay)

    def toggled(self, check: str) -> RoundData:
        """Return a copy with one flag flipped."""
        if check == "mcq":
            return RoundData(mcq=not self.mcq, essay=self.essay)
        return RoundData(mcq=self.mcq, essay=not self.essay)

    def to_dict(self) -> dict[str, bool]:
        return {"mcq": self.mcq, "essay": self.essay}


@dataclass(frozen=True)
class RowData:
    """A trackable unit within a subject, e.g. one exam year."""

    id: str
    name: str
    rounds: tuple[RoundData, ...] = ()

    @property
    def done(self) -> int:
        return sum(r.done for r in self.rounds)


@dataclass(frozen=True)
class SubjectData:
    """Ordered rows belonging to one subject."""

    rows: tuple[RowData, ...] = ()

    def find(self, row_id: str) -> RowData | None:
        for row in self.rows:
            if row.id == row_id:
                return row
        return None

    def index_of(self, row_id: str) -> int:
        for i, row in enumerate(self.rows):
            if row.id == row_id:
                return i
        return -1


@dataclass(frozen=True)
class SubjectInfo:
    """
    Display metadata for a subject.

    `key` is the client-local lookup slug; `remote_id` is assigned by the
    persistence service and stays None until the create call resolves.
    """

    key: str
    label: str
    icon: str = ""
    remote_id: str | None = None


@dataclass(frozen=True)
class TrackerSnapshot:
    """Read-only view of the engine state handed to the presentation layer."""

    subjects: tuple[SubjectInfo, ...] = ()
    data: Mapping[str, SubjectData] = field(default_factory=dict)
    loading: bool = False


# =============================================================================
# Helpers
# =============================================================================


def empty_rounds(total_rounds: int = TOTAL_ROUNDS) -> tuple[RoundData, ...]:
    """Fresh all-false rounds."""
    return tuple(RoundData() for _ in range(total_rounds))


def slugify(label: str) -> str:
    """
    Derive a subject key from its label.

    Lower-cases, collapses whitespace runs to hyphens and strips anything
    outside [a-z0-9-]. Surrounding whitespace is not trimmed first, so a
    leading space becomes a leading hyphen:

        >>> slugify("Combined Maths!!")
        'combined-maths'
        >>> slugify(" Physics")
        '-physics'
    """
    key = _WHITESPACE.sub("-", label.lower())
    return _INVALID_KEY_CHARS.sub("", key)


def new_provisional_id() -> str:
    """Client-generated row id used until the remote insert resolves."""
    return str(uuid.uuid4())
