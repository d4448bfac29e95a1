"""Supabase-backed composite-key table store."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from photo_catalog.domain.errors import NotFoundError, StorageError
from photo_catalog.services.metadata import QueryPage, TableItem, TableKey, TableStore

_COLUMNS = "pk, sk, attributes"
MERGE_FUNCTION = "merge_photo_item_attributes"


@dataclass
class SupabaseTableStore(TableStore):
    """Table store on a `(pk, sk, attributes jsonb)` table."""

    client: Client
    table_name: str
    merge_function: str = MERGE_FUNCTION

    def put(self, key: TableKey, attributes: dict[str, object]) -> None:
        """Upsert an item."""
        self._execute(
            self.client.table(self.table_name).upsert(
                {
                    "pk": key.partition,
                    "sk": key.sort,
                    "attributes": attributes,
                    "updated_at": _now(),
                }
            ),
            "put",
        )

    def get(self, key: TableKey) -> dict[str, object] | None:
        """Return attributes for a key, if present."""
        response = self._execute(
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("pk", key.partition)
            .eq("sk", key.sort)
            .limit(1),
            "get",
        )
        if not response.data:
            return None
        return dict(response.data[0]["attributes"] or {})

    def query(  # noqa: PLR0913
        self,
        partition: str,
        *,
        limit: int,
        descending: bool = False,
        start_after: TableKey | None = None,
        filters: dict[str, str] | None = None,
    ) -> QueryPage:
        """Query one partition; fetch one extra row to detect another page."""
        request = (
            self.client.table(self.table_name).select(_COLUMNS).eq("pk", partition)
        )
        for name, value in (filters or {}).items():
            request = request.eq(f"attributes->>{name}", value)
        if start_after is not None:
            if descending:
                request = request.lt("sk", start_after.sort)
            else:
                request = request.gt("sk", start_after.sort)
        response = self._execute(
            request.order("sk", desc=descending).limit(limit + 1), "query"
        )
        rows = response.data or []
        items = [
            TableItem(
                key=TableKey(partition=row["pk"], sort=row["sk"]),
                attributes=dict(row["attributes"] or {}),
            )
            for row in rows[:limit]
        ]
        continuation_key = items[-1].key if len(rows) > limit and items else None
        return QueryPage(items=items, continuation_key=continuation_key)

    def update(self, key: TableKey, changes: dict[str, object]) -> None:
        """Merge changes into an existing item's attributes.

        The merge runs inside the database as a single statement, so
        concurrent updates to different attributes of one item never
        overwrite each other.
        """
        response = self._execute(
            self.client.rpc(
                self.merge_function,
                {"p_pk": key.partition, "p_sk": key.sort, "p_changes": changes},
            ),
            "update",
        )
        if not response.data:
            raise NotFoundError(f"no item for {key.partition}/{key.sort}")

    def delete(self, key: TableKey) -> bool:
        """Delete an item and report whether a row was removed."""
        response = self._execute(
            self.client.table(self.table_name)
            .delete()
            .eq("pk", key.partition)
            .eq("sk", key.sort),
            "delete",
        )
        return bool(response.data)

    def _execute(self, request, operation: str):  # type: ignore[no-untyped-def]
        try:
            return request.execute()
        except (APIError, httpx.HTTPError) as exc:
            raise StorageError(f"table {operation} failed") from exc


def _now() -> str:
    return datetime.now(tz=UTC).isoformat()
