import pytest

from storefront.errors import ValidationError, NotFoundError, ConflictError
from storefront.services import reviews, order_processor

ADDRESS = '221B Baker Street, London'


def _buy(db, user, product, status='confirmed'):
    order = order_processor.create_order(db, user.id, [{'product_id': product.id, 'quantity': 1}],
                                         shipping_address=ADDRESS)
    if status != 'pending':
        order_processor.update_order_status(db, order.id, status)
    return order


def test_rating_aggregate_follows_create_and_delete(db, make_user, make_product):
    product = make_product()
    created = [reviews.create_review(db, product.id, make_user().id, rating)
               for rating in (5, 4, 3)]

    db.expire_all()
    assert product.average_rating == 4.0
    assert product.review_count == 3

    reviews.delete_review(db, created[2].id)
    db.expire_all()
    assert product.average_rating == 4.5
    assert product.review_count == 2


def test_rating_rounds_to_one_decimal(db, make_user, make_product):
    product = make_product()
    for rating in (5, 4, 4):
        reviews.create_review(db, product.id, make_user().id, rating)

    db.expire_all()
    assert product.average_rating == 4.3


def test_update_recomputes_rating(db, make_user, make_product):
    product = make_product()
    review = reviews.create_review(db, product.id, make_user().id, 2, 'meh')

    updated = reviews.update_review(db, review.id, rating=5)

    assert updated.comment == 'meh'
    db.expire_all()
    assert product.average_rating == 5.0


def test_second_review_is_a_conflict(db, make_user, make_product):
    user, product = make_user(), make_product()
    reviews.create_review(db, product.id, user.id, 4)

    with pytest.raises(ConflictError) as exc:
        reviews.create_review(db, product.id, user.id, 5)

    assert exc.value.status_code == 409
    db.expire_all()
    assert product.review_count == 1


@pytest.mark.parametrize('rating', [0, 6, -1])
def test_rating_out_of_range(db, make_user, make_product, rating):
    with pytest.raises(ValidationError):
        reviews.create_review(db, make_product().id, make_user().id, rating)


def test_review_requires_existing_product_and_user(db, make_user, make_product):
    with pytest.raises(NotFoundError):
        reviews.create_review(db, 999, make_user().id, 4)
    with pytest.raises(NotFoundError):
        reviews.create_review(db, make_product().id, 999, 4)


def test_verified_purchase_is_fixed_at_creation(db, make_user, make_product):
    buyer, browser = make_user(), make_user()
    product = make_product(stock=10)
    _buy(db, buyer, product)

    verified = reviews.create_review(db, product.id, buyer.id, 5)
    unverified = reviews.create_review(db, product.id, browser.id, 3)
    assert verified.is_verified_purchase is True
    assert unverified.is_verified_purchase is False

    # Покупка после отзыва не меняет флаг
    _buy(db, browser, product)
    reviews.update_review(db, unverified.id, rating=4)
    db.expire_all()
    assert reviews.get_review(db, unverified.id).is_verified_purchase is False


def test_pending_order_does_not_count_as_purchase(db, make_user, make_product):
    user, product = make_user(), make_product(stock=10)
    _buy(db, user, product, status='pending')

    review = reviews.create_review(db, product.id, user.id, 4)
    assert review.is_verified_purchase is False


def test_can_review(db, make_user, make_product):
    user, product = make_user(), make_product()

    assert reviews.can_review(db, user.id, product.id)['can_review'] is True

    review = reviews.create_review(db, product.id, user.id, 4)
    status = reviews.can_review(db, user.id, product.id)
    assert status['can_review'] is False
    assert status['review_id'] == review.id


def test_listing_and_stats(db, make_user, make_product):
    product = make_product(stock=10)
    buyer = make_user()
    _buy(db, buyer, product)
    reviews.create_review(db, product.id, buyer.id, 5, 'Great fit')
    for rating in (5, 4, 1):
        reviews.create_review(db, product.id, make_user().id, rating)

    rows, total = reviews.list_product_reviews(db, product.id)
    assert total == 4

    _, five_star = reviews.list_product_reviews(db, product.id, rating=5)
    assert five_star == 2
    _, verified = reviews.list_product_reviews(db, product.id, verified_only=True)
    assert verified == 1

    stats = reviews.product_review_stats(db, product.id)
    assert stats['total_reviews'] == 4
    assert stats['average_rating'] == 3.8
    assert stats['five_star'] == 2
    assert stats['two_star'] == 0
    assert stats['verified_reviews'] == 1
    assert stats['rating_distribution']['five_star'] == 50

    featured = reviews.featured_reviews(db)
    assert [r.comment for r in featured] == ['Great fit']

    rows, total = reviews.list_user_reviews(db, buyer.id)
    assert total == 1


def test_stats_without_reviews(db, make_product):
    stats = reviews.product_review_stats(db, make_product().id)
    assert stats['total_reviews'] == 0
    assert stats['average_rating'] == 0
    assert stats['rating_distribution'] is None
