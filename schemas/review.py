from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from schemas.order import CamelModel


class ReviewCreate(CamelModel):
    order_id: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    review: str = Field(min_length=1, max_length=2000)

    @field_validator("review")
    @classmethod
    def strip_review(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("review must not be blank")
        return v


class ReviewOut(CamelModel):
    id: str
    order_id: str
    buyer_id: str
    buyer_name: Optional[str] = None
    seller_id: str
    rating: int
    review: str
    created_at: datetime


class ReviewCreated(CamelModel):
    review_id: str
    review: ReviewOut
    seller_rating_updated: bool


class ReviewList(CamelModel):
    reviews: List[ReviewOut]
    total: int
