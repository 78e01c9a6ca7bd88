# Overview: Service-layer operations for the shopping cart.

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Cart, CartItem, Product


class CartError(ServiceError):
    pass


def get_or_create_cart(user_id: int) -> Cart:
    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.commit()
    return cart


def _get_item(cart: Cart, item_id: int) -> CartItem:
    item = CartItem.query.filter_by(id=item_id, cart_id=cart.id).first()
    if not item:
        raise NotFoundError("Cart item not found")
    return item


def add_item(user_id: int, product_id: int, quantity: int) -> Cart:
    """Add a product, merging with an existing line. The merged quantity must fit stock."""
    cart = get_or_create_cart(user_id)

    product = db.session.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFoundError("Product not found")

    item = CartItem.query.filter_by(cart_id=cart.id, product_id=product_id).first()
    wanted = quantity + (item.quantity if item else 0)
    if product.quantity < wanted:
        raise CartError("Not enough stock available")

    if item:
        item.quantity = wanted
    else:
        db.session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
    db.session.commit()
    db.session.refresh(cart)
    return cart


def update_item(user_id: int, item_id: int, quantity: int) -> Cart:
    cart = get_or_create_cart(user_id)
    item = _get_item(cart, item_id)

    if item.product.quantity < quantity:
        raise CartError("Not enough stock available")

    item.quantity = quantity
    db.session.commit()
    db.session.refresh(cart)
    return cart


def remove_item(user_id: int, item_id: int) -> Cart:
    cart = get_or_create_cart(user_id)
    item = _get_item(cart, item_id)
    db.session.delete(item)
    db.session.commit()
    db.session.refresh(cart)
    return cart


def clear(user_id: int) -> Cart:
    cart = get_or_create_cart(user_id)
    CartItem.query.filter_by(cart_id=cart.id).delete()
    db.session.commit()
    db.session.refresh(cart)
    return cart
