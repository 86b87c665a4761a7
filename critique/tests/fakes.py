"""
In-memory stand-in for the slice of the supabase-py table API we call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

from postgrest.exceptions import APIError

UNIQUE_KEYS = {
    "reviews": ("image_id",),
    "likes": ("image_id", "student_id"),
}
TIMESTAMP_COLUMNS = {
    "student_images": "upload_time",
    "reviews": "review_time",
    "likes": "like_time",
}


def _same(left: Any, right: Any) -> bool:
    # PostgREST filters arrive as strings and are coerced server-side.
    return str(left) == str(right)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, list[dict[str, Any]]] = field(
        default_factory=lambda: {"student_images": [], "reviews": [], "likes": []}
    )
    calls: list[tuple[str, str, Any]] = field(default_factory=list)
    orders: list[list[tuple[str, bool]]] = field(default_factory=list)
    next_ids: dict[str, int] = field(default_factory=dict)

    def table(self, name: str) -> "FakeRequest":
        return FakeRequest(self, name)

    def next_id(self, table: str) -> int:
        self.next_ids[table] = self.next_ids.get(table, 0) + 1
        return self.next_ids[table]


class FakeRequest:
    def __init__(self, client: FakeSupabaseClient, table: str):
        self.client = client
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: dict[str, Any] = {}
        self.filters: list[tuple[str, Any]] = []
        self.order_by: list[tuple[str, bool]] = []

    def select(self, columns: str = "*") -> "FakeRequest":
        self.columns = columns
        return self

    def insert(self, data: dict[str, Any]) -> "FakeRequest":
        self.op, self.payload = "insert", dict(data)
        return self

    def update(self, data: dict[str, Any]) -> "FakeRequest":
        self.op, self.payload = "update", dict(data)
        return self

    def delete(self) -> "FakeRequest":
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeRequest":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeRequest":
        self.order_by.append((column, desc))
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        return all(_same(row.get(c), v) for c, v in self.filters)

    def execute(self) -> SimpleNamespace:
        self.client.calls.append((self.op, self.table, self.columns))
        if self.order_by:
            self.client.orders.append(list(self.order_by))
        rows = self.client.tables[self.table]
        if self.op == "insert":
            return SimpleNamespace(data=[self._insert(rows)])
        if self.op == "update":
            matched = [row for row in rows if self._matches(row)]
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched])
        if self.op == "delete":
            matched = [row for row in rows if self._matches(row)]
            self.client.tables[self.table] = [r for r in rows if r not in matched]
            return SimpleNamespace(data=matched)
        return SimpleNamespace(data=self._select(rows))

    def _insert(self, rows: list[dict[str, Any]]) -> dict[str, Any]:
        key = UNIQUE_KEYS.get(self.table)
        if key and any(
            all(_same(row.get(c), self.payload.get(c)) for c in key) for row in rows
        ):
            raise APIError(
                {
                    "code": "23505",
                    "message": "duplicate key value violates unique constraint",
                    "details": "",
                    "hint": "",
                }
            )
        row = {"id": self.client.next_id(self.table), **self.payload}
        row.setdefault(
            TIMESTAMP_COLUMNS[self.table], datetime.now(timezone.utc).isoformat()
        )
        rows.append(row)
        return dict(row)

    def _select(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        selected = [dict(row) for row in rows if self._matches(row)]
        # Later orders break ties of earlier ones; sort is stable.
        for column, desc in reversed(self.order_by):
            selected.sort(key=lambda row: row.get(column), reverse=desc)
        if self.columns == "id":
            return [{"id": row["id"]} for row in selected]
        if "reviews(*)" in self.columns:
            for row in selected:
                row["reviews"] = [
                    dict(r)
                    for r in self.client.tables["reviews"]
                    if _same(r["image_id"], row["id"])
                ]
                count = sum(
                    1
                    for like in self.client.tables["likes"]
                    if _same(like["image_id"], row["id"])
                )
                row["likes"] = [{"count": count}]
        return selected
