import logging

from sqlalchemy import func, select

from core.celery import celery_app
from core.db import db_session
from models.review import Review
from models.user import Seller
from services.pricing import round_half_up

logger = logging.getLogger(__name__)


def recompute_rating(db, seller_id: str) -> dict | None:
    """Rebuild a seller's rating aggregate from the reviews table."""
    seller = db.get(Seller, seller_id)
    if not seller:
        logger.warning("Rating reconciliation skipped, seller %s not found", seller_id)
        return None
    average, count = db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.seller_id == seller_id)
    ).one()
    seller.rating = round_half_up(float(average or 0))
    seller.rating_count = int(count or 0)
    logger.info("Seller %s rating reconciled to %.1f over %d reviews", seller_id, seller.rating, seller.rating_count)
    return {"seller_id": seller_id, "rating": seller.rating, "rating_count": seller.rating_count}


@celery_app.task(bind=True, max_retries=5)
def recompute_seller_rating(self, seller_id: str):
    try:
        with db_session() as db:
            return recompute_rating(db, seller_id)
    except Exception as exc:
        countdown = min(2 ** self.request.retries * 10, 300)
        raise self.retry(exc=exc, countdown=countdown)
