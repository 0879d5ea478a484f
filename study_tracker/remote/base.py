"""Interface the engine expects from the persistence service."""

from __future__ import annotations

from typing import Any, Protocol


class RemoteStore(Protocol):
    """
    Collection-style access to subject and row records.

    Every method raises RemoteStoreError on failure. Identifiers are
    assigned by the service and returned in the inserted records.
    """

    async def list_subjects(self) -> list[dict[str, Any]]: ...

    async def insert_subject(self, record: dict[str, Any]) -> dict[str, Any]: ...

    async def update_subject(self, subject_id: str, changes: dict[str, Any]) -> None: ...

    async def delete_subject(self, subject_id: str) -> None: ...

    async def list_rows(self) -> list[dict[str, Any]]: ...

    async def insert_rows(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    async def update_row(self, row_id: str, changes: dict[str, Any]) -> None: ...

    async def delete_row(self, row_id: str) -> None: ...
