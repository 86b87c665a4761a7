"""
Pydantic schemas for the critique API. JSON uses camelCase keys.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    message: str
    image_id: Optional[int]
    filename: str
    url: Optional[str] = None


class LikeRequest(CamelModel):
    image_id: int
    student_name: str = Field(..., min_length=1, max_length=100)
    student_id: str = Field(..., min_length=1, max_length=50)


class UnlikeRequest(CamelModel):
    image_id: int
    student_id: str = Field(..., min_length=1, max_length=50)


class LikeStatusResponse(CamelModel):
    liked: bool


class ReviewRequest(CamelModel):
    image_id: int
    teacher_name: str = Field(..., min_length=1, max_length=100)
    score: int = Field(..., ge=0, le=100)
    comment: Optional[str] = None


class MessageResponse(CamelModel):
    message: str
