"""
HTTP routes for the critique API.
"""

from __future__ import annotations

import logging
import os
import re
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from critique.config import Settings, get_settings
from critique.db import DbClient, is_unique_violation
from critique.db.statements import (
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
    UpdateReview,
)
from critique.dependencies import get_db_client, get_storage_client
from critique.schemas import (
    LikeRequest,
    LikeStatusResponse,
    MessageResponse,
    ReviewRequest,
    UnlikeRequest,
    UploadResponse,
)
from critique.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_IMAGE_TYPES = re.compile(r"jpeg|jpg|png|gif|webp")


def _is_image(filename: str, content_type: str | None) -> bool:
    extension = os.path.splitext(filename)[1].lower()
    return bool(
        ALLOWED_IMAGE_TYPES.search(extension)
        and ALLOWED_IMAGE_TYPES.search(content_type or "")
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    student_name: str = Form(..., alias="studentName", min_length=1),
    student_id: str = Form(..., alias="studentId", min_length=1),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    original_name = image.filename or ""
    if not _is_image(original_name, image.content_type):
        raise HTTPException(status_code=400, detail="Only image files may be uploaded")

    data = await image.read()
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Image is too large")

    filename = uuid4().hex + os.path.splitext(original_name)[1].lower()
    stored = storage.upload(data, filename, image.content_type)
    if not stored.success:
        raise HTTPException(status_code=500, detail="Upload failed")

    try:
        result = db.execute(
            InsertSubmission(
                student_name=student_name,
                student_id=student_id,
                filename=filename,
                original_name=original_name,
                file_url=stored.url or "",
                file_size=stored.size or len(data),
            )
        )
    except Exception:
        removed = storage.delete(filename)
        if not removed.success:
            logger.warning("Could not delete stored file %s: %s", filename, removed.error)
        raise
    return UploadResponse(
        message="Image uploaded",
        image_id=result.inserted_id,
        filename=filename,
        url=stored.url,
    )


@router.get("/images")
def list_images(db: DbClient = Depends(get_db_client)) -> list[dict]:
    return db.execute(ListSubmissions()).rows


@router.delete("/images/{image_id}", response_model=MessageResponse)
def delete_image(
    image_id: int,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    submission = db.execute(GetSubmission(image_id)).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Image not found")

    filename = submission.get("filename")
    if filename:
        removed = storage.delete(filename)
        if not removed.success:
            logger.warning("Could not delete stored file %s: %s", filename, removed.error)

    db.execute(DeleteReviews(image_id))
    db.execute(DeleteLikes(image_id))
    db.execute(DeleteSubmission(image_id))
    return MessageResponse(message="Image deleted")


@router.post("/like", response_model=MessageResponse)
def like_image(payload: LikeRequest, db: DbClient = Depends(get_db_client)):
    try:
        db.execute(
            InsertLike(payload.image_id, payload.student_name, payload.student_id)
        )
    except Exception as exc:
        if is_unique_violation(exc):
            raise HTTPException(
                status_code=409, detail="You already liked this image"
            ) from exc
        raise
    return MessageResponse(message="Liked")


@router.delete("/like", response_model=MessageResponse)
def unlike_image(payload: UnlikeRequest, db: DbClient = Depends(get_db_client)):
    result = db.execute(DeleteLike(payload.image_id, payload.student_id))
    if not result.row_count:
        raise HTTPException(status_code=404, detail="Like not found")
    return MessageResponse(message="Like removed")


@router.get("/like-status/{image_id}/{student_id}", response_model=LikeStatusResponse)
def like_status(image_id: int, student_id: str, db: DbClient = Depends(get_db_client)):
    row = db.execute(GetLike(image_id, student_id)).first()
    return LikeStatusResponse(liked=row is not None)


@router.post("/review", response_model=MessageResponse)
def review_image(payload: ReviewRequest, db: DbClient = Depends(get_db_client)):
    """
    Create the review for an image, or replace the existing one.

    Check-then-act across two statements; concurrent first reviews of the
    same image are caught by the unique index on ``reviews.image_id``.
    """
    existing = db.execute(GetReview(payload.image_id)).first()
    if existing:
        db.execute(
            UpdateReview(
                teacher_name=payload.teacher_name,
                score=payload.score,
                comment=payload.comment,
                submission_id=payload.image_id,
            )
        )
        return MessageResponse(message="Review updated")

    db.execute(
        InsertReview(
            submission_id=payload.image_id,
            teacher_name=payload.teacher_name,
            score=payload.score,
            comment=payload.comment,
        )
    )
    return MessageResponse(message="Review submitted")
