"""
Supabase client: emulates the query contract on the PostgREST table API.

The table API has no free-form SQL, so raw statements are classified by their
verb and target table into one of the typed statements the application uses,
then mapped onto table calls. Schema is provisioned out-of-band.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from critique.db.base import QueryResult, statement_verb
from critique.db.errors import UnsupportedStatementError
from critique.db.statements import (
    LIKES_TABLE,
    REVIEWS_TABLE,
    SCHEMA,
    SUBMISSIONS_TABLE,
    CreateTable,
    DeleteLike,
    DeleteLikes,
    DeleteReviews,
    DeleteSubmission,
    GetLike,
    GetReview,
    GetSubmission,
    InsertLike,
    InsertReview,
    InsertSubmission,
    ListSubmissions,
    Statement,
    UpdateReview,
)

logger = logging.getLogger(__name__)

DDL_VERBS = ("CREATE", "ALTER", "DROP")

_TARGET_TABLE = {
    "SELECT": re.compile(r"\bFROM\s+(\w+)", re.IGNORECASE),
    "INSERT": re.compile(r"\bINTO\s+(\w+)", re.IGNORECASE),
    "UPDATE": re.compile(r"^\s*UPDATE\s+(\w+)", re.IGNORECASE),
    "DELETE": re.compile(r"\bFROM\s+(\w+)", re.IGNORECASE),
}
_JOIN_RE = re.compile(r"\bJOIN\b", re.IGNORECASE)

# Embedded resources give the same columns the SQL list statement returns.
_LIST_COLUMNS = "*, reviews(*), likes(count)"
_REVIEW_FIELDS = ("score", "comment", "teacher_name", "review_time")


def classify_statement(text: str, params: Sequence[Any]) -> Optional[Statement]:
    """
    Recognise one of the application's statement shapes in ``text``.

    Returns None for anything outside the known set.
    """
    verb = statement_verb(text)
    pattern = _TARGET_TABLE.get(verb)
    match = pattern.search(text) if pattern else None
    if not match:
        return None
    table = match.group(1).lower()
    count = len(params)

    if verb == "SELECT":
        if table == SUBMISSIONS_TABLE:
            if _JOIN_RE.search(text) or count == 0:
                return ListSubmissions()
            if count == 1:
                return GetSubmission(params[0])
        elif table == REVIEWS_TABLE and count == 1:
            return GetReview(params[0])
        elif table == LIKES_TABLE and count == 2:
            return GetLike(params[0], params[1])
    elif verb == "INSERT":
        if table == SUBMISSIONS_TABLE and count == 6:
            return InsertSubmission(*params)
        if table == REVIEWS_TABLE and count == 4:
            return InsertReview(*params)
        if table == LIKES_TABLE and count == 3:
            return InsertLike(*params)
    elif verb == "UPDATE":
        if table == REVIEWS_TABLE and count == 4:
            return UpdateReview(*params)
    elif verb == "DELETE":
        if table == LIKES_TABLE and count == 2:
            return DeleteLike(params[0], params[1])
        if table == LIKES_TABLE and count == 1:
            return DeleteLikes(params[0])
        if table == REVIEWS_TABLE and count == 1:
            return DeleteReviews(params[0])
        if table == SUBMISSIONS_TABLE and count == 1:
            return DeleteSubmission(params[0])
    return None


def flatten_submission(row: dict[str, Any]) -> dict[str, Any]:
    """Fold embedded ``reviews`` and ``likes(count)`` into flat columns."""
    flat = dict(row)
    reviews = flat.pop("reviews", None) or []
    likes = flat.pop("likes", None) or []
    # A unique foreign key makes PostgREST embed one object, not a list.
    if isinstance(reviews, dict):
        review = reviews
    else:
        review = reviews[0] if reviews else {}
    for key in _REVIEW_FIELDS:
        flat[key] = review.get(key)
    flat["like_count"] = likes[0].get("count", 0) if likes else 0
    return flat


class SupabaseDbClient:
    """Supabase tables through the supabase-py client."""

    backend_name = "supabase"

    def __init__(self, client: Client):
        self.client = client
        self._handlers: dict[type, Callable[[Any], QueryResult]] = {
            ListSubmissions: self._list_submissions,
            GetSubmission: self._get_submission,
            InsertSubmission: self._insert_submission,
            DeleteSubmission: self._delete_submission,
            GetReview: self._get_review,
            InsertReview: self._insert_review,
            UpdateReview: self._update_review,
            DeleteReviews: self._delete_reviews,
            GetLike: self._get_like,
            InsertLike: self._insert_like,
            DeleteLike: self._delete_like,
            DeleteLikes: self._delete_likes,
            CreateTable: self._create_table,
        }

    def query(self, text: str, params: Sequence[Any] = ()) -> QueryResult:
        verb = statement_verb(text)
        if verb in DDL_VERBS:
            logger.info("Schema statements are managed in the Supabase dashboard")
            return QueryResult(rows=[], row_count=0)
        statement = classify_statement(text, params)
        if statement is None:
            logger.warning("Unsupported statement for supabase backend: %s", text)
            return QueryResult(rows=[], row_count=0)
        return self.execute(statement)

    def execute(self, statement: Statement) -> QueryResult:
        handler = self._handlers.get(type(statement))
        if handler is None:
            raise UnsupportedStatementError(statement, self.backend_name)
        try:
            return handler(statement)
        except (APIError, httpx.HTTPError):
            logger.exception("supabase %s failed", type(statement).__name__)
            raise

    def initialize(self) -> None:
        logger.info(
            "Using Supabase database; tables must exist already: %s",
            ", ".join(SCHEMA),
        )

    # ── Table helpers ─────────────────────────────────────────

    def _select(
        self, table: str, where: dict[str, Any], columns: str = "*"
    ) -> QueryResult:
        request = self.client.table(table).select(columns)
        for column, value in where.items():
            request = request.eq(column, value)
        rows = request.execute().data or []
        return QueryResult(rows=rows, row_count=len(rows))

    def _insert(self, table: str, data: dict[str, Any]) -> QueryResult:
        rows = self.client.table(table).insert(data).execute().data or []
        inserted_id = rows[0].get("id") if rows else None
        return QueryResult(rows=rows, row_count=len(rows), inserted_id=inserted_id)

    def _update(
        self, table: str, data: dict[str, Any], where: dict[str, Any]
    ) -> QueryResult:
        request = self.client.table(table).update(data)
        for column, value in where.items():
            request = request.eq(column, value)
        rows = request.execute().data or []
        return QueryResult(rows=rows, row_count=len(rows))

    def _delete(self, table: str, where: dict[str, Any]) -> QueryResult:
        request = self.client.table(table).delete()
        for column, value in where.items():
            request = request.eq(column, value)
        rows = request.execute().data or []
        return QueryResult(rows=rows, row_count=len(rows))

    # ── Statement handlers ────────────────────────────────────

    def _create_table(self, statement: CreateTable) -> QueryResult:
        return QueryResult(rows=[], row_count=0)

    def _list_submissions(self, statement: ListSubmissions) -> QueryResult:
        response = (
            self.client.table(SUBMISSIONS_TABLE)
            .select(_LIST_COLUMNS)
            .order("upload_time", desc=True)
            .order("id", desc=True)
            .execute()
        )
        rows = [flatten_submission(row) for row in response.data or []]
        return QueryResult(rows=rows, row_count=len(rows))

    def _get_submission(self, statement: GetSubmission) -> QueryResult:
        return self._select(SUBMISSIONS_TABLE, {"id": statement.submission_id})

    def _insert_submission(self, statement: InsertSubmission) -> QueryResult:
        return self._insert(
            SUBMISSIONS_TABLE,
            {
                "student_name": statement.student_name,
                "student_id": statement.student_id,
                "filename": statement.filename,
                "original_name": statement.original_name,
                "file_url": statement.file_url,
                "file_size": statement.file_size,
            },
        )

    def _delete_submission(self, statement: DeleteSubmission) -> QueryResult:
        return self._delete(SUBMISSIONS_TABLE, {"id": statement.submission_id})

    def _get_review(self, statement: GetReview) -> QueryResult:
        return self._select(
            REVIEWS_TABLE, {"image_id": statement.submission_id}, columns="id"
        )

    def _insert_review(self, statement: InsertReview) -> QueryResult:
        return self._insert(
            REVIEWS_TABLE,
            {
                "image_id": statement.submission_id,
                "teacher_name": statement.teacher_name,
                "score": statement.score,
                "comment": statement.comment,
            },
        )

    def _update_review(self, statement: UpdateReview) -> QueryResult:
        return self._update(
            REVIEWS_TABLE,
            {
                "teacher_name": statement.teacher_name,
                "score": statement.score,
                "comment": statement.comment,
                "review_time": datetime.now(timezone.utc).isoformat(),
            },
            {"image_id": statement.submission_id},
        )

    def _delete_reviews(self, statement: DeleteReviews) -> QueryResult:
        return self._delete(REVIEWS_TABLE, {"image_id": statement.submission_id})

    def _get_like(self, statement: GetLike) -> QueryResult:
        return self._select(
            LIKES_TABLE,
            {"image_id": statement.submission_id, "student_id": statement.student_id},
            columns="id",
        )

    def _insert_like(self, statement: InsertLike) -> QueryResult:
        return self._insert(
            LIKES_TABLE,
            {
                "image_id": statement.submission_id,
                "student_name": statement.student_name,
                "student_id": statement.student_id,
            },
        )

    def _delete_like(self, statement: DeleteLike) -> QueryResult:
        return self._delete(
            LIKES_TABLE,
            {"image_id": statement.submission_id, "student_id": statement.student_id},
        )

    def _delete_likes(self, statement: DeleteLikes) -> QueryResult:
        return self._delete(LIKES_TABLE, {"image_id": statement.submission_id})

    def __repr__(self):
        return "<SupabaseDbClient>"
