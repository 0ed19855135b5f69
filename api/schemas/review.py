from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, date
from enum import Enum

from config import MIN_REVIEW_COMMENT_LENGTH, MIN_DETAILED_REVIEW_COMMENT_LENGTH, MAX_REVIEW_IMAGES

class VisitPurpose(str, Enum):
    WORK = "work"
    DATE = "date"
    FRIENDS = "friends"
    SOLO = "solo"

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., max_length=1000)

    @field_validator("comment")
    @classmethod
    def check_comment(cls, value: str) -> str:
        value = value.strip()
        if len(value) < MIN_REVIEW_COMMENT_LENGTH:
            raise ValueError(f"評論至少需要 {MIN_REVIEW_COMMENT_LENGTH} 個字")
        return value

class ReviewResponse(BaseModel):
    id: int
    shop_id: int
    user_id: Optional[str] = None
    reviewer_name: str
    rating: int
    comment: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DetailedReviewBase(BaseModel):
    rating: int = Field(5, ge=1, le=5)
    atmosphere_rating: int = Field(5, ge=1, le=5)
    coffee_quality_rating: int = Field(5, ge=1, le=5)
    service_rating: int = Field(5, ge=1, le=5)
    value_rating: int = Field(5, ge=1, le=5)
    visit_purpose: VisitPurpose = VisitPurpose.SOLO
    comment: str
    visit_date: Optional[date] = None

class DetailedReviewCreate(DetailedReviewBase):
    images: List[str] = Field(default_factory=list)

    @field_validator("comment")
    @classmethod
    def check_comment(cls, value: str) -> str:
        value = value.strip()
        if len(value) < MIN_DETAILED_REVIEW_COMMENT_LENGTH:
            raise ValueError(f"評論至少需要 {MIN_DETAILED_REVIEW_COMMENT_LENGTH} 個字")
        return value

    @field_validator("images")
    @classmethod
    def check_images(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_REVIEW_IMAGES:
            raise ValueError(f"圖片最多 {MAX_REVIEW_IMAGES} 張")
        return value

class DetailedReviewResponse(DetailedReviewBase):
    id: int
    shop_id: int
    user_id: Optional[str] = None
    reviewer_name: str
    images: List[str] = []
    helpful_count: int = 0
    is_flagged: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
