# src/storefront/services/reviews.py
import logging

from sqlalchemy import func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.database import queries, transaction
from storefront.database.models import Review, Product
from storefront.errors import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)


def get_review(db: Session, review_id: int) -> Review:
    review = queries.get_review(db, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


def _require_product(db: Session, product_id: int) -> Product:
    product = queries.get_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def refresh_product_rating(db: Session, product_id: int):
    """Пересчитывает средний рейтинг и число отзывов товара полным AVG/COUNT."""
    average, count = queries.rating_aggregate(db, product_id)
    product = _require_product(db, product_id)
    product.average_rating = round(average, 1)
    product.review_count = count


def _check_rating(rating):
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5")


def create_review(db: Session, product_id: int, user_id: int, rating: int, comment: str | None = None) -> Review:
    _check_rating(rating)
    try:
        with transaction(db):
            if not queries.get_user(db, user_id):
                raise NotFoundError("User not found")
            _require_product(db, product_id)

            if queries.find_user_review(db, user_id, product_id):
                raise ConflictError("You have already reviewed this product")

            review = Review(
                product_id=product_id,
                user_id=user_id,
                rating=rating,
                comment=comment,
                is_verified_purchase=queries.has_purchased(db, user_id, product_id),
            )
            db.add(review)
            db.flush()
            refresh_product_rating(db, product_id)
    except IntegrityError:
        # Параллельный запрос успел создать отзыв раньше нас
        raise ConflictError("You have already reviewed this product")

    logger.info(f"Пользователь {user_id} оставил отзыв #{review.id} на товар {product_id} "
                f"(оценка {rating}, покупка подтверждена: {review.is_verified_purchase})")
    return review


def update_review(db: Session, review_id: int, rating: int | None = None, comment: str | None = None) -> Review:
    if rating is not None:
        _check_rating(rating)

    with transaction(db):
        review = get_review(db, review_id)
        if rating is not None:
            review.rating = rating
        if comment is not None:
            review.comment = comment
        db.flush()
        refresh_product_rating(db, review.product_id)
    return review


def delete_review(db: Session, review_id: int) -> bool:
    with transaction(db):
        review = get_review(db, review_id)
        product_id = review.product_id
        db.delete(review)
        db.flush()
        refresh_product_rating(db, product_id)
    logger.info(f"Отзыв #{review_id} на товар {product_id} удалён")
    return True


def can_review(db: Session, user_id: int, product_id: int) -> dict:
    _require_product(db, product_id)
    existing = queries.find_user_review(db, user_id, product_id)
    return {
        'can_review': existing is None,
        'has_reviewed': existing is not None,
        'review_id': existing.id if existing else None,
        'is_verified_purchase': queries.has_purchased(db, user_id, product_id),
    }


# --- Списки и статистика ---
def list_product_reviews(db: Session, product_id: int, page: int = 1, limit: int = 10,
                         rating: int | None = None, verified_only: bool = False):
    _require_product(db, product_id)
    query = db.query(Review).filter(Review.product_id == product_id)
    if rating:
        query = query.filter(Review.rating == rating)
    if verified_only:
        query = query.filter(Review.is_verified_purchase.is_(True))
    return queries.paginate(query.order_by(Review.created_at.desc(), Review.id.desc()), page, limit)


def list_user_reviews(db: Session, user_id: int, page: int = 1, limit: int = 10):
    if not queries.get_user(db, user_id):
        raise NotFoundError("User not found")
    query = db.query(Review).filter(Review.user_id == user_id)
    return queries.paginate(query.order_by(Review.created_at.desc(), Review.id.desc()), page, limit)


def product_review_stats(db: Session, product_id: int) -> dict:
    _require_product(db, product_id)

    def stars(n):
        return func.sum(case((Review.rating == n, 1), else_=0))

    row = (db.query(func.avg(Review.rating), func.count(Review.id),
                    stars(5), stars(4), stars(3), stars(2), stars(1),
                    func.sum(case((Review.is_verified_purchase.is_(True), 1), else_=0)))
           .filter(Review.product_id == product_id)
           .one())
    average, total, five, four, three, two, one, verified = row
    total = int(total or 0)
    counts = {
        'five_star': int(five or 0),
        'four_star': int(four or 0),
        'three_star': int(three or 0),
        'two_star': int(two or 0),
        'one_star': int(one or 0),
    }

    distribution = None
    if total:
        distribution = {key: round(value / total * 100) for key, value in counts.items()}

    return {
        'average_rating': round(float(average or 0), 1),
        'total_reviews': total,
        **counts,
        'verified_reviews': int(verified or 0),
        'rating_distribution': distribution,
    }


def featured_reviews(db: Session, limit: int = 5) -> list[Review]:
    return (db.query(Review)
            .filter(Review.rating >= 4, Review.comment.isnot(None), Review.comment != '')
            .order_by(Review.rating.desc(), Review.created_at.desc(), Review.id.desc())
            .limit(limit)
            .all())


def recent_reviews(db: Session, limit: int = 10) -> list[Review]:
    return db.query(Review).order_by(Review.created_at.desc(), Review.id.desc()).limit(limit).all()
