"""
Progress state engine.

Owns the in-memory hierarchy and keeps the persistence service in step
with it through optimistic write-through:

1. Validate input (rejections change nothing and make no remote call)
2. Replace the affected subtree locally, before the first await
3. Await the remote call
4. On failure, deliver one notice; updates and deletes are never rolled
   back, inserts are provisional and withdrawn

Row writes are serialized per remote row and read their payload from the
current tree when sent, so concurrent toggles on one row cannot overwrite
each other remotely.

Usage:
    tracker = StudyTracker(store, notifier=print)
    await tracker.load()
    await tracker.toggle_check("physics", row_id, 0, "mcq")
    print(tracker.total_progress())
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace
from types import MappingProxyType
from typing import Any

from loguru import logger

from study_tracker.remote.base import RemoteStore
from study_tracker.tracker import progress
from study_tracker.tracker.defaults import DEFAULT_ROW_NAMES, DEFAULT_SUBJECTS
from study_tracker.tracker.errors import (
    LoadFailure,
    RemoteStoreError,
    TrackerError,
    ValidationRejection,
    WriteFailure,
)
from study_tracker.tracker.hierarchy import (
    build_hierarchy,
    row_record,
    rounds_payload,
    subject_record,
)
from study_tracker.tracker.models import (
    CHECK_FIELDS,
    TOTAL_ROUNDS,
    RowData,
    SubjectData,
    SubjectInfo,
    TrackerSnapshot,
    empty_rounds,
    new_provisional_id,
    slugify,
)
from study_tracker.tracker.notifications import Notice, Notifier, Severity, log_notice


class StudyTracker:
    """
    Subjects -> rows -> rounds -> flags, mirrored to a RemoteStore.

    All mutation methods are coroutines. Their local effect is complete
    before they first suspend, so a caller that schedules them with
    asyncio.create_task sees changes in invocation order.
    """

    def __init__(
        self,
        store: RemoteStore,
        notifier: Notifier | None = None,
        total_rounds: int = TOTAL_ROUNDS,
    ):
        """
        Initialize the engine with an empty hierarchy.

        Args:
            store: Persistence service client
            notifier: Receives one Notice per failure (default: log it)
            total_rounds: Rounds tracked per row
        """
        self.store = store
        self.notifier = notifier or log_notice
        self.total_rounds = total_rounds

        self._subjects: tuple[SubjectInfo, ...] = ()
        self._data: dict[str, SubjectData] = {}
        self._loading = False

        # provisional row id -> remote id, kept after confirmation
        self._aliases: dict[str, str] = {}
        # inserts in flight; resolve to the remote id or None on failure
        self._pending_rows: dict[str, asyncio.Future[str | None]] = {}
        self._pending_subjects: dict[str, asyncio.Future[str | None]] = {}
        self._row_locks: dict[str, asyncio.Lock] = {}

    # =========================================================================
    # Read API
    # =========================================================================

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def subjects(self) -> tuple[SubjectInfo, ...]:
        return self._subjects

    @property
    def data(self) -> MappingProxyType[str, SubjectData]:
        return MappingProxyType(self._data)

    def snapshot(self) -> TrackerSnapshot:
        """Immutable view of {subjects, data, loading}."""
        return TrackerSnapshot(
            subjects=self._subjects,
            data=MappingProxyType(dict(self._data)),
            loading=self._loading,
        )

    def get_subject(self, key: str) -> SubjectInfo | None:
        for subject in self._subjects:
            if subject.key == key:
                return subject
        return None

    def find_row(self, subject_key: str, row_id: str) -> RowData | None:
        """Look up a row by its current id or by the provisional id it was created with."""
        data = self._data.get(subject_key)
        if data is None:
            return None
        return data.find(self._aliases.get(row_id, row_id))

    def subject_progress(self, key: str) -> int:
        data = self._data.get(key)
        if data is None:
            return 0
        return progress.subject_progress(data, self.total_rounds)

    def total_progress(self) -> int:
        return progress.total_progress(self._subjects, self._data, self.total_rounds)

    # =========================================================================
    # Load
    # =========================================================================

    async def load(self) -> bool:
        """
        Replace the hierarchy with the persisted one.

        Returns:
            True when fully loaded; False when a fetch failed, in which case
            the hierarchy is left empty and a LoadFailure notice is raised.
        """
        self._loading = True
        self._reset()
        try:
            subject_records = await self.store.list_subjects()
            row_records = await self.store.list_rows()
        except TrackerError as exc:
            self._report(
                LoadFailure(str(exc)),
                "Failed to load your study data",
                severity="error",
            )
            return False
        finally:
            self._loading = False

        subjects, data = build_hierarchy(subject_records, row_records, self.total_rounds)
        self._subjects = tuple(subjects)
        self._data = data
        logger.info(
            "Loaded {} subjects with {} rows",
            len(subjects),
            sum(len(d.rows) for d in data.values()),
        )
        return True

    async def seed_defaults(self) -> list[str]:
        """
        Create the starter subjects, each with the default year rows.

        Only runs on an empty hierarchy.

        Returns:
            Keys of the subjects created
        """
        if self._subjects:
            self._reject("Starter subjects can only be added to an empty tracker")
            return []

        created = []
        for label, icon in DEFAULT_SUBJECTS:
            key = await self.add_subject(label, icon)
            if not key:
                continue
            await self.add_rows(key, DEFAULT_ROW_NAMES)
            created.append(key)
        return created

    # =========================================================================
    # Row Operations
    # =========================================================================

    async def toggle_check(
        self,
        subject_key: str,
        row_id: str,
        round_index: int,
        field: str,
    ) -> bool:
        """
        Flip one flag of one round.

        Returns:
            True if the remote write succeeded
        """
        row = self.find_row(subject_key, row_id)
        if row is None:
            self._reject(f"No row {row_id} in {subject_key}")
            return False
        if field not in CHECK_FIELDS:
            self._reject(f"Unknown check field {field!r}")
            return False
        if not 0 <= round_index < self.total_rounds:
            self._reject(f"Round {round_index} is outside 0..{self.total_rounds - 1}")
            return False

        rounds = list(row.rounds)
        rounds[round_index] = rounds[round_index].toggled(field)
        self._replace_row(subject_key, replace(row, rounds=tuple(rounds)))

        return await self._push_row(
            subject_key, row.id, "rounds", f"Failed to save progress for {row.name}"
        )

    async def rename_row(self, subject_key: str, row_id: str, name: str) -> bool:
        name = name.strip()
        row = self.find_row(subject_key, row_id)
        if row is None:
            self._reject(f"No row {row_id} in {subject_key}")
            return False
        if not name:
            self._reject("Row name cannot be empty")
            return False

        self._replace_row(subject_key, replace(row, name=name))
        return await self._push_row(subject_key, row.id, "name", f"Failed to rename {name}")

    async def add_row(self, subject_key: str, name: str) -> str | None:
        """
        Append a row with all-false rounds.

        Returns:
            The row's remote id, or None if rejected or the insert failed
            (the provisional row is withdrawn in that case)
        """
        ids = await self._insert_rows(subject_key, [name], f"Failed to add {name.strip()}")
        return ids[0] if ids else None

    async def add_rows(self, subject_key: str, names: Iterable[str]) -> list[str]:
        """
        Append several rows with a single bulk insert.

        Blank names are skipped. All-or-nothing: if the insert fails none of
        the rows remain.

        Returns:
            Remote ids in the order given, or [] on rejection/failure
        """
        names = list(names)
        return await self._insert_rows(subject_key, names, f"Failed to add {len(names)} rows")

    async def delete_row(self, subject_key: str, row_id: str) -> bool:
        row = self.find_row(subject_key, row_id)
        if row is None:
            self._reject(f"No row {row_id} in {subject_key}")
            return False

        data = self._data[subject_key]
        self._set_rows(subject_key, tuple(r for r in data.rows if r.id != row.id))

        remote_id = await self._row_remote_id(row.id)
        if remote_id is None:
            # insert never landed, nothing to delete remotely
            return False
        try:
            async with self._lock_for(remote_id):
                await self.store.delete_row(remote_id)
        except TrackerError as exc:
            self._report(WriteFailure(str(exc)), f"Failed to delete {row.name}")
            return False
        finally:
            self._row_locks.pop(remote_id, None)
        return True

    # =========================================================================
    # Subject Operations
    # =========================================================================

    async def add_subject(self, label: str, icon: str) -> str:
        """
        Create a subject keyed by slugify(label).

        The subject is visible locally before the insert resolves.

        Returns:
            The key, or "" if rejected or the insert failed
        """
        key = slugify(label)
        label = label.strip()
        if not key.strip("-"):
            self._reject(f"Cannot derive a subject key from {label!r}")
            return ""
        if self.get_subject(key) is not None:
            self._reject(f"Subject {key} already exists")
            return ""

        info = SubjectInfo(key=key, label=label, icon=icon)
        sort_order = len(self._subjects)
        self._subjects = (*self._subjects, info)
        self._data = {**self._data, key: SubjectData()}

        pending = asyncio.get_running_loop().create_future()
        self._pending_subjects[key] = pending
        try:
            record = await self.store.insert_subject(subject_record(info, sort_order))
            remote_id = _record_id(record)
        except TrackerError as exc:
            self._settle_subject(key, pending, None)
            self._report(WriteFailure(str(exc)), f"Failed to add {label}")
            return ""

        self._settle_subject(key, pending, remote_id)
        logger.debug("Subject {} saved as {}", key, remote_id)
        return key

    async def edit_subject(self, key: str, label: str, icon: str) -> bool:
        """Change label and icon. The key never changes."""
        label = label.strip()
        if self.get_subject(key) is None:
            self._reject(f"No subject {key}")
            return False
        if not label:
            self._reject("Subject name cannot be empty")
            return False

        self._subjects = tuple(
            replace(s, label=label, icon=icon) if s.key == key else s for s in self._subjects
        )

        remote_id = await self._subject_remote_id(key)
        current = self.get_subject(key)
        if remote_id is None or current is None:
            return False
        try:
            await self.store.update_subject(remote_id, {"label": current.label, "icon": current.icon})
        except TrackerError as exc:
            self._report(WriteFailure(str(exc)), f"Failed to update {label}")
            return False
        return True

    async def delete_subject(self, key: str) -> bool:
        """Remove a subject and all of its rows."""
        info = self.get_subject(key)
        if info is None:
            self._reject(f"No subject {key}")
            return False

        self._subjects = tuple(s for s in self._subjects if s.key != key)
        self._data = {k: v for k, v in self._data.items() if k != key}

        remote_id = info.remote_id or await self._subject_remote_id(key)
        if remote_id is None:
            return False
        try:
            await self.store.delete_subject(remote_id)
        except TrackerError as exc:
            self._report(WriteFailure(str(exc)), f"Failed to delete {info.label}")
            return False
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _reset(self) -> None:
        self._subjects = ()
        self._data = {}
        self._aliases.clear()
        self._row_locks.clear()

    def _set_rows(self, subject_key: str, rows: tuple[RowData, ...]) -> None:
        self._data = {**self._data, subject_key: SubjectData(rows=rows)}

    def _replace_row(self, subject_key: str, row: RowData) -> None:
        data = self._data[subject_key]
        self._set_rows(subject_key, tuple(row if r.id == row.id else r for r in data.rows))

    def _lock_for(self, remote_id: str) -> asyncio.Lock:
        lock = self._row_locks.get(remote_id)
        if lock is None:
            lock = self._row_locks[remote_id] = asyncio.Lock()
        return lock

    async def _subject_remote_id(self, key: str) -> str | None:
        info = self.get_subject(key)
        if info is not None and info.remote_id:
            return info.remote_id
        pending = self._pending_subjects.get(key)
        if pending is not None:
            return await pending
        return None

    async def _row_remote_id(self, row_id: str) -> str | None:
        row_id = self._aliases.get(row_id, row_id)
        pending = self._pending_rows.get(row_id)
        if pending is not None:
            return await pending
        return row_id

    async def _push_row(self, subject_key: str, row_id: str, column: str, message: str) -> bool:
        remote_id = await self._row_remote_id(row_id)
        if remote_id is None:
            return False

        async with self._lock_for(remote_id):
            # payload comes from the tree as it is now, not when the caller acted
            row = self.find_row(subject_key, remote_id)
            if row is None:
                return False
            if column == "rounds":
                changes: dict[str, Any] = {"rounds": rounds_payload(row.rounds)}
            else:
                changes = {"name": row.name}
            try:
                await self.store.update_row(remote_id, changes)
            except TrackerError as exc:
                self._report(WriteFailure(str(exc)), message)
                return False
        return True

    async def _insert_rows(self, subject_key: str, names: list[str], message: str) -> list[str]:
        cleaned = [n.strip() for n in names if n and n.strip()]
        if subject_key not in self._data:
            self._reject(f"No subject {subject_key}")
            return []
        if not cleaned:
            self._reject("Row name cannot be empty")
            return []

        rows = [
            RowData(id=new_provisional_id(), name=name, rounds=empty_rounds(self.total_rounds))
            for name in cleaned
        ]
        start = len(self._data[subject_key].rows)
        self._set_rows(subject_key, (*self._data[subject_key].rows, *rows))

        loop = asyncio.get_running_loop()
        for row in rows:
            self._pending_rows[row.id] = loop.create_future()

        provisional = [row.id for row in rows]
        try:
            subject_id = await self._subject_remote_id(subject_key)
            if subject_id is None:
                raise WriteFailure(f"Subject {subject_key} was never saved")
            records = await self.store.insert_rows(
                [row_record(row, subject_id, start + i) for i, row in enumerate(rows)]
            )
            if len(records) != len(rows):
                raise RemoteStoreError(f"Insert returned {len(records)} of {len(rows)} rows")
            remote_ids = [_record_id(record) for record in records]
        except TrackerError as exc:
            self._withdraw_rows(subject_key, provisional)
            self._report(WriteFailure(str(exc)), message)
            return []

        self._confirm_rows(subject_key, dict(zip(provisional, remote_ids)))
        logger.debug("Saved {} rows in {}", len(remote_ids), subject_key)
        return remote_ids

    def _confirm_rows(self, subject_key: str, mapping: dict[str, str]) -> None:
        self._aliases.update(mapping)
        data = self._data.get(subject_key)
        if data is not None:
            self._set_rows(
                subject_key,
                tuple(replace(r, id=mapping[r.id]) if r.id in mapping else r for r in data.rows),
            )
        for provisional, remote_id in mapping.items():
            pending = self._pending_rows.pop(provisional, None)
            if pending is not None and not pending.done():
                pending.set_result(remote_id)

    def _withdraw_rows(self, subject_key: str, row_ids: list[str]) -> None:
        doomed = set(row_ids)
        data = self._data.get(subject_key)
        if data is not None:
            self._set_rows(subject_key, tuple(r for r in data.rows if r.id not in doomed))
        for row_id in row_ids:
            pending = self._pending_rows.pop(row_id, None)
            if pending is not None and not pending.done():
                pending.set_result(None)

    def _settle_subject(
        self,
        key: str,
        pending: asyncio.Future[str | None],
        remote_id: str | None,
    ) -> None:
        """Record the outcome of a subject insert; withdraw the subject on failure."""
        owned = self._pending_subjects.get(key) is pending
        if owned:
            del self._pending_subjects[key]

        # a later subject may have reused the key after this one was deleted
        current = self.get_subject(key) if owned else None
        if current is not None and current.remote_id is None:
            if remote_id is None:
                self._subjects = tuple(s for s in self._subjects if s.key != key)
                self._data = {k: v for k, v in self._data.items() if k != key}
            else:
                self._subjects = tuple(
                    replace(s, remote_id=remote_id) if s.key == key else s
                    for s in self._subjects
                )
        pending.set_result(remote_id)

    def _reject(self, message: str) -> None:
        self._report(ValidationRejection(message), message, severity="warning")

    def _report(self, error: TrackerError, message: str, severity: Severity = "warning") -> None:
        logger.debug("{}: {!r}", message, error)
        self.notifier(Notice(severity=severity, message=message, error=error))


def _record_id(record: Any) -> str:
    if not isinstance(record, dict) or record.get("id") is None:
        raise RemoteStoreError("Insert response carried no id")
    return str(record["id"])
