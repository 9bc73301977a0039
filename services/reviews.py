import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import Conflict, Forbidden, ValidationError
from models.order import Order, OrderProgress
from models.review import Review
from models.user import Buyer, Seller
from schemas.review import ReviewCreate
from services.order_store import apply_transition
from services.pricing import round_half_up
from tasks.rating_tasks import recompute_seller_rating

logger = logging.getLogger(__name__)

REVIEW_LIST_LIMIT = 50


def submit_review(db: Session, buyer: Buyer, data: ReviewCreate) -> tuple[Review, bool]:
    """Attach the single review of a completed order and fold it into the seller rating.

    Returns the review and whether the seller aggregate was updated inline.
    The review stands even when the aggregate update fails; that case is
    logged and handed to the rating reconciliation task.
    """
    created: dict = {}

    def decide(order: Order):
        if order.buyer_id != buyer.id:
            raise Forbidden("Order does not belong to this buyer")
        if order.seller_id != data.seller_id:
            raise ValidationError("sellerId does not match the order")
        if order.status_progress != OrderProgress.COMPLETED:
            raise Conflict("Can only review completed orders")
        if order.ulasan:
            raise Conflict("Review already exists for this order")

        review = Review(
            id=uuid.uuid4().hex,
            order_id=order.id,
            buyer_id=buyer.id,
            buyer_name=buyer.name,
            seller_id=order.seller_id,
            rating=data.rating,
            review=data.review,
            created_at=datetime.utcnow(),
        )
        db.add(review)
        created["review"] = review
        return {
            "ulasan": {
                "id": review.id,
                "rating": review.rating,
                "review": review.review,
                "createdAt": review.created_at.isoformat(),
            }
        }

    order = apply_transition(db, data.order_id, decide)
    review = created["review"]
    logger.info("Review %s submitted for order %s (rating %d)", review.id, order.id, review.rating)

    try:
        rating_updated = apply_seller_rating(db, order.seller_id, review.rating)
    except Exception:
        db.rollback()
        logger.exception(
            "Seller %s rating not updated for review %s, queued for reconciliation", order.seller_id, review.id
        )
        schedule_rating_reconciliation(order.seller_id)
        rating_updated = False
    return review, rating_updated


def apply_seller_rating(db: Session, seller_id: str, rating: int) -> bool:
    """Fold one rating into the seller's running average, guarded on the current count."""
    attempts = max(1, settings.ORDER_UPDATE_RETRIES)
    for _ in range(attempts):
        seller = db.get(Seller, seller_id, populate_existing=True)
        if not seller:
            logger.warning("Seller %s not found, rating %d not applied", seller_id, rating)
            db.rollback()
            return False
        old_average = seller.rating or 0.0
        old_count = seller.rating_count or 0
        new_count = old_count + 1
        new_average = round_half_up((old_average * old_count + rating) / new_count)
        result = db.execute(
            update(Seller)
            .where(Seller.id == seller_id, Seller.rating_count == old_count)
            .values(rating=new_average, rating_count=new_count, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            db.commit()
            return True
        db.rollback()
    raise Conflict(f"Seller {seller_id} rating changed concurrently")


def schedule_rating_reconciliation(seller_id: str) -> None:
    try:
        recompute_seller_rating.delay(seller_id)
    except Exception:
        logger.exception("Could not queue rating reconciliation for seller %s", seller_id)


def list_reviews(db: Session, seller_id: str, limit: int = REVIEW_LIST_LIMIT) -> list[Review]:
    stmt = select(Review).where(Review.seller_id == seller_id).order_by(Review.created_at.desc()).limit(limit)
    return list(db.scalars(stmt))
