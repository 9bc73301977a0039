from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import Buyer
from schemas.review import ReviewCreate, ReviewCreated, ReviewList
from security.dependencies import get_current_buyer
from services import reviews as review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewCreated, status_code=201)
def submit_review(data: ReviewCreate, buyer: Buyer = Depends(get_current_buyer), db: Session = Depends(get_db)):
    review, rating_updated = review_service.submit_review(db, buyer, data)
    return {"review_id": review.id, "review": review, "seller_rating_updated": rating_updated}


@router.get("", response_model=ReviewList)
def list_reviews(seller_id: str = Query(alias="sellerId", min_length=1), db: Session = Depends(get_db)):
    reviews = review_service.list_reviews(db, seller_id)
    return {"reviews": reviews, "total": len(reviews)}
