# src/storefront/webapp/routes/reviews.py
from flask import Blueprint, request

from storefront.schemas import ReviewCreate, ReviewUpdate, parse
from storefront.services import reviews
from storefront.utils.helpers import review_to_dict
from ..auth import login_required, current_user, ensure_owner_or_admin
from ..common import get_db, ok, paged, json_body, page_args, flag_arg

bp = Blueprint('reviews', __name__, url_prefix='/api/reviews')


@bp.route('/featured')
def featured():
    limit = request.args.get('limit', 5, type=int)
    return ok([review_to_dict(r) for r in reviews.featured_reviews(get_db(), limit)])


@bp.route('/recent')
def recent():
    limit = request.args.get('limit', 10, type=int)
    return ok([review_to_dict(r) for r in reviews.recent_reviews(get_db(), limit)])


@bp.route('/product/<int:product_id>')
def product_reviews(product_id):
    page, limit = page_args()
    rows, total = reviews.list_product_reviews(get_db(), product_id, page, limit,
                                               rating=request.args.get('rating', type=int),
                                               verified_only=flag_arg('verified_only'))
    return paged(rows, total, page, limit, review_to_dict)


@bp.route('/product/<int:product_id>/stats')
def product_stats(product_id):
    return ok(reviews.product_review_stats(get_db(), product_id))


@bp.route('/<int:review_id>')
def get_review(review_id):
    return ok(review_to_dict(reviews.get_review(get_db(), review_id)))


@bp.route('/user/me')
@login_required
def my_reviews():
    page, limit = page_args()
    rows, total = reviews.list_user_reviews(get_db(), current_user().id, page, limit)
    return paged(rows, total, page, limit, review_to_dict)


@bp.route('/can-review/<int:product_id>')
@login_required
def can_review(product_id):
    return ok(reviews.can_review(get_db(), current_user().id, product_id))


@bp.route('', methods=['POST'])
@login_required
def create_review():
    payload = parse(ReviewCreate, json_body())
    user_id = payload.user_id or current_user().id
    ensure_owner_or_admin(user_id)
    review = reviews.create_review(get_db(), payload.product_id, user_id, payload.rating, payload.comment)
    return ok(review_to_dict(review), status=201, message='Review created')


@bp.route('/<int:review_id>', methods=['PUT'])
@login_required
def update_review(review_id):
    payload = parse(ReviewUpdate, json_body())
    review = reviews.get_review(get_db(), review_id)
    ensure_owner_or_admin(review.user_id)
    review = reviews.update_review(get_db(), review_id, payload.rating, payload.comment)
    return ok(review_to_dict(review), message='Review updated')


@bp.route('/<int:review_id>', methods=['DELETE'])
@login_required
def delete_review(review_id):
    review = reviews.get_review(get_db(), review_id)
    ensure_owner_or_admin(review.user_id)
    reviews.delete_review(get_db(), review_id)
    return ok(None, message='Review deleted')
