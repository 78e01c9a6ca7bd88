# Overview: Service-layer operations for product reviews.

from ..errors import ForbiddenError, NotFoundError, ServiceError
from ..extensions import db
from ..models import Product, Review, User


class ReviewError(ServiceError):
    pass


def reviews_for_product(product_id: int):
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")
    return Review.query.filter_by(product_id=product_id).order_by(Review.created_at.desc(), Review.id.desc())


def create_review(user_id: int, product_id: int, rating: int, comment: str) -> Review:
    """One review per user per product."""
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")
    if Review.query.filter_by(user_id=user_id, product_id=product_id).first():
        raise ReviewError("You have already reviewed this product")

    review = Review(user_id=user_id, product_id=product_id, rating=rating, comment=comment)
    db.session.add(review)
    db.session.commit()
    return review


def delete_review(review_id: int, actor: User) -> None:
    review = db.session.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    if review.user_id != actor.id and not actor.is_admin():
        raise ForbiddenError("Unauthorized")
    db.session.delete(review)
    db.session.commit()
