# Overview: Service-layer operations for customer wishlists.

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Product, Wishlist


class WishlistError(ServiceError):
    pass


def list_items(user_id: int) -> list[Wishlist]:
    return Wishlist.query.filter_by(user_id=user_id).order_by(Wishlist.created_at.desc(), Wishlist.id.desc()).all()


def add(user_id: int, product_id: int) -> Wishlist:
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")
    if Wishlist.query.filter_by(user_id=user_id, product_id=product_id).first():
        raise WishlistError("Product is already in your wishlist")

    item = Wishlist(user_id=user_id, product_id=product_id)
    db.session.add(item)
    db.session.commit()
    return item


def remove(user_id: int, product_id: int) -> None:
    item = Wishlist.query.filter_by(user_id=user_id, product_id=product_id).first()
    if not item:
        raise NotFoundError("Product not found in wishlist")
    db.session.delete(item)
    db.session.commit()
