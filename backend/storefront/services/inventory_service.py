# Overview: Service-layer operations for inventory; stock guard alerts, adjustments and the inventory dashboard.

"""
Inventory Service

STOCK GUARD:
- check_and_create_alerts(product) is a no-op while ANY unresolved alert
  exists for the product, whatever its type.
- Otherwise it raises out_of_stock XOR low_stock (out_of_stock wins) and,
  independently, reorder_needed. At most two rows per call.
- There is no locking around the "unresolved alert exists" check; two
  concurrent callers can both insert.

STOCK MUTATIONS:
Every path that changes Product.quantity goes through log_stock_change so
the application log carries old/new quantity per product.
"""

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import InventoryAlert, Product, ReorderRequest
from ..models.inventory import (
    ALERT_LOW_STOCK,
    ALERT_OUT_OF_STOCK,
    ALERT_REORDER_NEEDED,
    REORDER_PENDING,
)
from . import notification_service


ADJUST_INCREASE = "increase"
ADJUST_DECREASE = "decrease"
ADJUST_SET = "set"
ADJUSTMENT_TYPES = (ADJUST_INCREASE, ADJUST_DECREASE, ADJUST_SET)


class InventoryError(ServiceError):
    """Raised for inventory operation errors."""
    pass


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def log_stock_change(product: Product, old_quantity: int, new_quantity: int, reason: str) -> None:
    current_app.logger.info(
        "Stock change product_id=%s reason=%s old_quantity=%s new_quantity=%s",
        product.id, reason, old_quantity, new_quantity,
    )


# =============================================================================
# STOCK GUARD
# =============================================================================

def has_unresolved_alerts(product_id: int) -> bool:
    return db.session.query(
        InventoryAlert.query.filter_by(product_id=product_id, is_resolved=False).exists()
    ).scalar()


def check_and_create_alerts(product: Product) -> list[InventoryAlert]:
    """
    Raise stock alerts for `product` if none are open.

    Returns the alerts created (possibly empty). Commits when it creates any.
    """
    if has_unresolved_alerts(product.id):
        return []

    created = []
    if product.is_out_of_stock():
        created.append(InventoryAlert(
            product_id=product.id,
            alert_type=ALERT_OUT_OF_STOCK,
            message=f"Product '{product.name}' is out of stock!",
        ))
    elif product.is_low_stock():
        created.append(InventoryAlert(
            product_id=product.id,
            alert_type=ALERT_LOW_STOCK,
            message=f"Product '{product.name}' is running low on stock. Current quantity: {product.quantity}",
        ))

    if product.needs_reordering():
        created.append(InventoryAlert(
            product_id=product.id,
            alert_type=ALERT_REORDER_NEEDED,
            message=f"Product '{product.name}' needs to be reordered. Current quantity: {product.quantity}",
        ))

    if created:
        db.session.add_all(created)
        db.session.commit()
    return created


def notify_low_stock(product: Product) -> int:
    """Tell every admin that `product` is low. Fire-and-forget."""
    return notification_service.notify_admins(
        notification_service.LOW_STOCK,
        "Low stock alert",
        f"Product '{product.name}' is running low on stock. Current quantity: {product.quantity}",
        product_id=product.id,
        quantity=product.quantity,
        low_stock_threshold=product.low_stock_threshold,
    )


# =============================================================================
# ALERTS
# =============================================================================

def list_alerts(alert_type: str | None = None, resolved: bool | None = None, start=None, end=None):
    query = InventoryAlert.query
    if alert_type:
        query = query.filter(InventoryAlert.alert_type == alert_type)
    if resolved is not None:
        query = query.filter(InventoryAlert.is_resolved.is_(resolved))
    if start is not None:
        query = query.filter(InventoryAlert.created_at >= start)
    if end is not None:
        query = query.filter(InventoryAlert.created_at <= end)
    return query.order_by(InventoryAlert.created_at.desc(), InventoryAlert.id.desc())


def resolve_alert(alert_id: int) -> InventoryAlert:
    alert = db.session.get(InventoryAlert, alert_id)
    if not alert:
        raise NotFoundError("Alert not found")
    if alert.is_resolved:
        raise InventoryError("Alert is already resolved")
    alert.resolve()
    db.session.commit()
    return alert


# =============================================================================
# SETTINGS & ADJUSTMENTS
# =============================================================================

def update_inventory_settings(
    product_id: int,
    low_stock_threshold: int,
    reorder_quantity: int,
    auto_reorder: bool,
    reorder_cost_cents: int | None = None,
) -> Product:
    product = get_product(product_id)

    product.low_stock_threshold = low_stock_threshold
    product.reorder_quantity = reorder_quantity
    product.auto_reorder = auto_reorder
    if reorder_cost_cents is not None:
        product.reorder_cost_cents = reorder_cost_cents
    db.session.commit()

    check_and_create_alerts(product)
    return product


def adjust_stock(
    product_id: int,
    adjustment_type: str,
    quantity: int,
    reason: str,
    admin_id: int,
) -> tuple[Product, int]:
    """
    Manual stock correction.

    - increase: quantity += n
    - decrease: quantity -= n, clamped at 0
    - set:      quantity = n

    Returns (product, old_quantity).
    """
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise InventoryError(f"Unknown adjustment type: {adjustment_type}")
    if quantity < 0:
        raise InventoryError("Quantity must not be negative")

    product = get_product(product_id)
    old_quantity = product.quantity

    if adjustment_type == ADJUST_INCREASE:
        new_quantity = old_quantity + quantity
    elif adjustment_type == ADJUST_DECREASE:
        new_quantity = max(0, old_quantity - quantity)
    else:
        new_quantity = quantity

    product.quantity = new_quantity
    db.session.commit()

    current_app.logger.info(
        "Stock adjustment product_id=%s type=%s old_quantity=%s new_quantity=%s admin_id=%s reason=%s",
        product.id, adjustment_type, old_quantity, new_quantity, admin_id, reason,
    )

    check_and_create_alerts(product)
    return product, old_quantity


def send_low_stock_notifications() -> int:
    """Notify admins about every low-stock product. Returns products reported."""
    products = Product.low_stock_query().order_by(Product.quantity.asc()).all()
    for product in products:
        notify_low_stock(product)
    return len(products)


def check_all_products() -> int:
    """Run check_and_create_alerts over the catalogue. Returns alerts created."""
    created = 0
    for product in Product.query.order_by(Product.id).all():
        created += len(check_and_create_alerts(product))
    return created


# =============================================================================
# DASHBOARD
# =============================================================================

def inventory_dashboard() -> dict:
    low_stock = Product.low_stock_query().order_by(Product.quantity.asc()).all()
    out_of_stock = Product.out_of_stock_query().order_by(Product.name).all()
    needs_reorder = Product.needs_reordering_query().order_by(Product.quantity.asc()).all()

    unresolved = (
        InventoryAlert.query.filter_by(is_resolved=False)
        .order_by(InventoryAlert.created_at.desc())
        .limit(10)
        .all()
    )
    pending_reorders = (
        ReorderRequest.query.filter_by(status=REORDER_PENDING)
        .order_by(ReorderRequest.created_at.desc())
        .limit(10)
        .all()
    )

    total_value = db.session.query(
        func.coalesce(func.sum(Product.quantity * Product.price_cents), 0)
    ).scalar()

    return {
        "stats": {
            "total_products": Product.query.count(),
            "low_stock_count": len(low_stock),
            "out_of_stock_count": len(out_of_stock),
            "needs_reorder_count": len(needs_reorder),
            "unresolved_alerts_count": InventoryAlert.query.filter_by(is_resolved=False).count(),
            "pending_reorders_count": ReorderRequest.query.filter_by(status=REORDER_PENDING).count(),
            "total_inventory_value_cents": int(total_value or 0),
        },
        "low_stock_products": [p.to_dict() for p in low_stock[:10]],
        "out_of_stock_products": [p.to_dict() for p in out_of_stock[:10]],
        "needs_reorder_products": [p.to_dict() for p in needs_reorder[:10]],
        "recent_alerts": [a.to_dict() for a in unresolved],
        "pending_reorders": [r.to_dict() for r in pending_reorders],
    }
