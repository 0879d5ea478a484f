"""
PostgREST client for the study-tracker persistence service.

Talks to the REST interface Supabase exposes at /rest/v1, with two
collections: subjects and study_rows.

Usage:
    async with SupabaseStore.from_settings(get_settings()) as store:
        subjects = await store.list_subjects()
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from study_tracker.tracker.errors import RemoteStoreError


class SupabaseStore:
    """HTTP client for the subject and row collections."""

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        subjects_table: str = "subjects",
        rows_table: str = "study_rows",
        timeout_seconds: float = 30.0,
    ):
        """
        Initialize the store client.

        Args:
            base_url: Service URL, e.g. https://<project>.supabase.co
            api_key: Project API key (apikey header)
            access_token: User JWT; the API key is used when absent
            subjects_table: Subject collection name
            rows_table: Row collection name
            timeout_seconds: Transport timeout per request
        """
        self.base_url = base_url.rstrip("/")
        self.subjects_table = subjects_table
        self.rows_table = rows_table
        self.client = httpx.AsyncClient(
            base_url=f"{self.base_url}{self.REST_PATH}",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout_seconds),
        )

    @classmethod
    def from_settings(cls, settings: Any) -> SupabaseStore:
        return cls(
            base_url=settings.remote_url,
            api_key=settings.remote_api_key,
            access_token=settings.remote_access_token,
            subjects_table=settings.subjects_table,
            rows_table=settings.rows_table,
            timeout_seconds=settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> SupabaseStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        returning: bool = False,
    ) -> Any:
        headers = {"Prefer": "return=representation"} if returning else None
        try:
            response = await self.client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _error_detail(e.response)
            logger.debug("{} {} -> {}: {}", method, table, status, detail)
            raise RemoteStoreError(
                f"{method} {table} failed with status {status}: {detail}",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            logger.debug("{} {} transport error: {}", method, table, e)
            raise RemoteStoreError(f"{method} {table} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(f"{method} {table} returned a non-JSON body") from e

    async def _list(self, table: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET", table, params={"select": "*", "order": "sort_order.asc"}
        )
        if not isinstance(data, list):
            raise RemoteStoreError(f"GET {table} returned {type(data).__name__}, expected a list")
        return data

    async def _insert(self, table: str, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        data = await self._request("POST", table, json=records, returning=True)
        if not isinstance(data, list) or len(data) != len(records):
            raise RemoteStoreError(
                f"POST {table} returned {len(data) if isinstance(data, list) else 0} "
                f"records for {len(records)} inserted"
            )
        for record in data:
            if not isinstance(record, dict) or record.get("id") is None:
                raise RemoteStoreError(f"POST {table} returned a record without an id")
        return data

    async def _update(self, table: str, record_id: str, changes: dict[str, Any]) -> None:
        await self._request("PATCH", table, params={"id": f"eq.{record_id}"}, json=changes)

    async def _delete(self, table: str, record_id: str) -> None:
        await self._request("DELETE", table, params={"id": f"eq.{record_id}"})

    # =========================================================================
    # Subjects
    # =========================================================================

    async def list_subjects(self) -> list[dict[str, Any]]:
        """Fetch all subject records by sort position."""
        subjects = await self._list(self.subjects_table)
        logger.debug("Fetched {} subjects", len(subjects))
        return subjects

    async def insert_subject(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert one subject and return it with its assigned id."""
        return (await self._insert(self.subjects_table, [record]))[0]

    async def update_subject(self, subject_id: str, changes: dict[str, Any]) -> None:
        await self._update(self.subjects_table, subject_id, changes)

    async def delete_subject(self, subject_id: str) -> None:
        """Delete a subject; its rows go with it through the foreign key cascade."""
        await self._delete(self.subjects_table, subject_id)

    # =========================================================================
    # Rows
    # =========================================================================

    async def list_rows(self) -> list[dict[str, Any]]:
        """Fetch all row records by sort position."""
        rows = await self._list(self.rows_table)
        logger.debug("Fetched {} rows", len(rows))
        return rows

    async def insert_rows(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Insert one or more rows in a single request.

        Returns:
            Inserted records, in request order, carrying their assigned ids
        """
        return await self._insert(self.rows_table, records)

    async def update_row(self, row_id: str, changes: dict[str, Any]) -> None:
        await self._update(self.rows_table, row_id, changes)

    async def delete_row(self, row_id: str) -> None:
        await self._delete(self.rows_table, row_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Check if the persistence service answers.

        Returns:
            True if the subject collection is readable, False otherwise
        """
        try:
            response = await self.client.request(
                "GET",
                f"/{self.subjects_table}",
                params={"select": "id", "limit": "1"},
                timeout=5.0,
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
