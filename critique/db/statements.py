"""
The finite set of statements the application issues.

Each statement carries canonical (PostgreSQL dialect) SQL with ``$n``
placeholders and its parameters in placeholder order. SQL adapters run the
text; the Supabase adapter dispatches on the statement type.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Optional

SUBMISSIONS_TABLE = "student_images"
REVIEWS_TABLE = "reviews"
LIKES_TABLE = "likes"

SCHEMA: dict[str, str] = {
    SUBMISSIONS_TABLE: """
        CREATE TABLE IF NOT EXISTS student_images (
          id SERIAL PRIMARY KEY,
          student_name VARCHAR(100) NOT NULL,
          student_id VARCHAR(50) NOT NULL,
          filename VARCHAR(255),
          original_name VARCHAR(255),
          file_url TEXT,
          file_size INTEGER,
          upload_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    REVIEWS_TABLE: """
        CREATE TABLE IF NOT EXISTS reviews (
          id SERIAL PRIMARY KEY,
          image_id INTEGER REFERENCES student_images(id),
          teacher_name VARCHAR(100) NOT NULL,
          score INTEGER CHECK(score >= 0 AND score <= 100),
          comment TEXT,
          review_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
          UNIQUE(image_id)
        )
    """,
    LIKES_TABLE: """
        CREATE TABLE IF NOT EXISTS likes (
          id SERIAL PRIMARY KEY,
          image_id INTEGER REFERENCES student_images(id),
          student_name VARCHAR(100) NOT NULL,
          student_id VARCHAR(50) NOT NULL,
          like_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
          UNIQUE(image_id, student_id)
        )
    """,
}


@dataclass(frozen=True)
class Statement:
    """Base class; dataclass field order is the placeholder order."""

    template: ClassVar[str] = ""

    @property
    def sql(self) -> str:
        return self.template

    @property
    def params(self) -> list[Any]:
        return [getattr(self, f.name) for f in fields(self)]


@dataclass(frozen=True)
class CreateTable(Statement):
    table: str

    @property
    def sql(self) -> str:
        return SCHEMA[self.table]

    @property
    def params(self) -> list[Any]:
        return []


@dataclass(frozen=True)
class ListSubmissions(Statement):
    """Every submission with its review and like count, newest first."""

    template: ClassVar[str] = """
        SELECT
          si.*,
          r.score,
          r.comment,
          r.teacher_name,
          r.review_time,
          COUNT(l.id) AS like_count
        FROM student_images si
        LEFT JOIN reviews r ON si.id = r.image_id
        LEFT JOIN likes l ON si.id = l.image_id
        GROUP BY si.id, r.id
        ORDER BY si.upload_time DESC, si.id DESC
    """


@dataclass(frozen=True)
class GetSubmission(Statement):
    submission_id: int

    template: ClassVar[str] = "SELECT * FROM student_images WHERE id = $1"


@dataclass(frozen=True)
class InsertSubmission(Statement):
    student_name: str
    student_id: str
    filename: str
    original_name: str
    file_url: str
    file_size: int

    template: ClassVar[str] = (
        "INSERT INTO student_images "
        "(student_name, student_id, filename, original_name, file_url, file_size) "
        "VALUES ($1, $2, $3, $4, $5, $6) RETURNING id"
    )


@dataclass(frozen=True)
class DeleteSubmission(Statement):
    submission_id: int

    template: ClassVar[str] = "DELETE FROM student_images WHERE id = $1"


@dataclass(frozen=True)
class GetReview(Statement):
    submission_id: int

    template: ClassVar[str] = "SELECT id FROM reviews WHERE image_id = $1"


@dataclass(frozen=True)
class InsertReview(Statement):
    submission_id: int
    teacher_name: str
    score: int
    comment: Optional[str]

    template: ClassVar[str] = (
        "INSERT INTO reviews (image_id, teacher_name, score, comment) "
        "VALUES ($1, $2, $3, $4) RETURNING id"
    )


@dataclass(frozen=True)
class UpdateReview(Statement):
    teacher_name: str
    score: int
    comment: Optional[str]
    submission_id: int

    template: ClassVar[str] = (
        "UPDATE reviews "
        "SET teacher_name = $1, score = $2, comment = $3, "
        "review_time = CURRENT_TIMESTAMP "
        "WHERE image_id = $4"
    )


@dataclass(frozen=True)
class DeleteReviews(Statement):
    """Remove every review attached to one submission."""

    submission_id: int

    template: ClassVar[str] = "DELETE FROM reviews WHERE image_id = $1"


@dataclass(frozen=True)
class GetLike(Statement):
    submission_id: int
    student_id: str

    template: ClassVar[str] = (
        "SELECT id FROM likes WHERE image_id = $1 AND student_id = $2"
    )


@dataclass(frozen=True)
class InsertLike(Statement):
    submission_id: int
    student_name: str
    student_id: str

    template: ClassVar[str] = (
        "INSERT INTO likes (image_id, student_name, student_id) "
        "VALUES ($1, $2, $3) RETURNING id"
    )


@dataclass(frozen=True)
class DeleteLike(Statement):
    submission_id: int
    student_id: str

    template: ClassVar[str] = (
        "DELETE FROM likes WHERE image_id = $1 AND student_id = $2"
    )


@dataclass(frozen=True)
class DeleteLikes(Statement):
    """Remove every like attached to one submission."""

    submission_id: int

    template: ClassVar[str] = "DELETE FROM likes WHERE image_id = $1"
