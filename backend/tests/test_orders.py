"""
Order placement, cancellation, returns and staff review.
"""

import re

import pytest

from storefront.models import CartItem, InventoryAlert, Notification, Order, Transaction
from storefront.models.orders import (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    ORDER_CANCELLED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_RETURN_REQUESTED,
    ORDER_SHIPPED,
    TXN_PENDING,
)
from storefront.errors import ForbiddenError
from storefront.services import order_service
from storefront.services.order_service import OrderError


TICKET_PATTERN = re.compile(r"^[A-Z]{3}\d{4}$")


# =============================================================================
# IDENTIFIERS
# =============================================================================

class TestIdentifiers:

    def test_ticket_format(self, db_session):
        for _ in range(25):
            ticket = order_service.generate_ticket_number()
            assert TICKET_PATTERN.match(ticket)
            assert len(set(ticket[:3])) == 3

    def test_order_number_format(self, db_session):
        number = order_service.generate_order_number()
        assert number.startswith("ORD-")
        assert len(number) == 14


# =============================================================================
# PLACEMENT
# =============================================================================

class TestPlaceOrder:

    def test_places_order_and_decrements_stock(self, customer, make_product, add_to_cart, payment_method):
        product = make_product(quantity=5, price_cents=1250)
        add_to_cart(customer, product, 3)

        order, transaction = order_service.place_order(customer.id, payment_method.id)

        assert order.order_status == ORDER_PENDING
        assert order.total_amount_cents == 3750
        assert order.items[0].unit_price_cents == 1250
        assert product.quantity == 2
        assert transaction.status == TXN_PENDING
        assert transaction.amount_cents == 3750
        assert TICKET_PATTERN.match(transaction.ticket_number)
        assert CartItem.query.count() == 0

    def test_oversell_rejected_without_side_effects(self, customer, make_product, add_to_cart, payment_method):
        plenty = make_product(quantity=50)
        scarce = make_product(quantity=2)
        add_to_cart(customer, plenty, 1)
        add_to_cart(customer, scarce, 3)

        with pytest.raises(OrderError):
            order_service.place_order(customer.id, payment_method.id)

        assert plenty.quantity == 50
        assert scarce.quantity == 2
        assert Order.query.count() == 0
        assert Transaction.query.count() == 0
        assert CartItem.query.count() == 2

    def test_inactive_product_in_cart_rejected(
        self, db_session, customer, make_product, add_to_cart, payment_method
    ):
        product = make_product(name="Retired Lamp", quantity=5)
        add_to_cart(customer, product, 2)
        product.is_active = False
        db_session.commit()

        with pytest.raises(OrderError, match="Retired Lamp is no longer available"):
            order_service.place_order(customer.id, payment_method.id)

        assert product.quantity == 5
        assert Order.query.count() == 0
        assert CartItem.query.count() == 1

    def test_empty_cart_rejected(self, customer, payment_method):
        with pytest.raises(OrderError):
            order_service.place_order(customer.id, payment_method.id)

    def test_low_stock_after_order_alerts_admins(
        self, admin, customer, make_product, add_to_cart, payment_method
    ):
        product = make_product(quantity=12, low_stock_threshold=10)
        add_to_cart(customer, product, 4)

        order_service.place_order(customer.id, payment_method.id)

        assert Notification.query.filter_by(user_id=admin.id, type="low_stock").count() == 1
        assert InventoryAlert.query.filter_by(product_id=product.id, is_resolved=False).count() == 1


# =============================================================================
# CANCELLATION & RETURNS
# =============================================================================

class TestCancelOrder:

    def _place(self, customer, product, quantity, add_to_cart, payment_method):
        add_to_cart(customer, product, quantity)
        order, _ = order_service.place_order(customer.id, payment_method.id)
        return order

    def test_stock_round_trip(self, customer, make_product, add_to_cart, payment_method):
        product = make_product(quantity=5)
        order = self._place(customer, product, 3, add_to_cart, payment_method)
        assert product.quantity == 2

        order_service.cancel_order(order.id, customer)
        assert order.order_status == ORDER_CANCELLED
        assert product.quantity == 5

    @pytest.mark.parametrize("status", [ORDER_SHIPPED, ORDER_DELIVERED, ORDER_CANCELLED])
    def test_cannot_cancel_from_terminal_states(
        self, db_session, customer, make_product, add_to_cart, payment_method, status
    ):
        product = make_product(quantity=5)
        order = self._place(customer, product, 3, add_to_cart, payment_method)
        order.order_status = status
        db_session.commit()

        with pytest.raises(OrderError):
            order_service.cancel_order(order.id, customer)
        assert product.quantity == 2

    def test_customer_cannot_cancel_someone_elses_order(
        self, make_user, customer, make_product, add_to_cart, payment_method
    ):
        product = make_product(quantity=5)
        order = self._place(customer, product, 1, add_to_cart, payment_method)
        other = make_user()

        with pytest.raises(ForbiddenError):
            order_service.cancel_order(order.id, other)

    def test_staff_can_cancel_any_order(self, staff, customer, make_product, add_to_cart, payment_method):
        product = make_product(quantity=5)
        order = self._place(customer, product, 1, add_to_cart, payment_method)
        order_service.cancel_order(order.id, staff)
        assert order.order_status == ORDER_CANCELLED

    def test_return_only_from_delivered(self, db_session, customer, make_product, add_to_cart, payment_method):
        product = make_product(quantity=5)
        order = self._place(customer, product, 1, add_to_cart, payment_method)

        with pytest.raises(OrderError):
            order_service.request_return(order.id, customer, "damaged")

        order.order_status = ORDER_DELIVERED
        db_session.commit()
        order_service.request_return(order.id, customer, "damaged")
        assert order.order_status == ORDER_RETURN_REQUESTED
        assert order.return_reason == "damaged"
        assert product.quantity == 4


# =============================================================================
# STAFF REVIEW
# =============================================================================

class TestStaffReview:

    def _order(self, customer, make_product, add_to_cart, payment_method):
        add_to_cart(customer, make_product(quantity=5), 1)
        order, _ = order_service.place_order(customer.id, payment_method.id)
        return order

    def test_approve_notifies_customer(self, staff, customer, make_product, add_to_cart, payment_method):
        order = self._order(customer, make_product, add_to_cart, payment_method)
        order_service.approve_order(order.id, staff.id, "looks good")

        assert order.approval_status == APPROVAL_APPROVED
        assert order.staff_id == staff.id
        assert order.order_status == ORDER_PROCESSING
        assert Notification.query.filter_by(user_id=customer.id, type="order_approved").count() == 1

    def test_reject_is_final(self, staff, customer, make_product, add_to_cart, payment_method):
        order = self._order(customer, make_product, add_to_cart, payment_method)
        order_service.reject_order(order.id, staff.id, "fraud check")
        assert order.approval_status == APPROVAL_REJECTED
        assert order.order_status == ORDER_CANCELLED

        with pytest.raises(OrderError):
            order_service.approve_order(order.id, staff.id)

    def test_pending_review_queue(self, staff, customer, make_product, add_to_cart, payment_method):
        first = self._order(customer, make_product, add_to_cart, payment_method)
        second = self._order(customer, make_product, add_to_cart, payment_method)
        order_service.approve_order(first.id, staff.id)

        assert [o.id for o in order_service.pending_review_query()] == [second.id]


# =============================================================================
# ROUTES
# =============================================================================

class TestOrderRoutes:

    def test_checkout_endpoint(self, client, customer, customer_headers, make_product, add_to_cart, payment_method):
        add_to_cart(customer, make_product(quantity=5, price_cents=500), 2)

        response = client.post('/api/orders', headers=customer_headers, json={
            'payment_method_id': payment_method.id,
        })
        assert response.status_code == 201
        assert response.json['order']['total_amount_cents'] == 1000
        assert TICKET_PATTERN.match(response.json['transaction']['ticket_number'])

    def test_checkout_oversell_is_400(self, client, customer, customer_headers, make_product, add_to_cart, payment_method):
        add_to_cart(customer, make_product(quantity=1), 2)
        response = client.post('/api/orders', headers=customer_headers, json={
            'payment_method_id': payment_method.id,
        })
        assert response.status_code == 400

    def test_checkout_requires_payment_method(self, client, customer_headers):
        response = client.post('/api/orders', headers=customer_headers, json={})
        assert response.status_code == 422
        assert 'payment_method_id' in response.json['errors']

    def test_staff_status_update_rejects_return_requested(
        self, client, staff_headers, customer, make_product, add_to_cart, payment_method
    ):
        add_to_cart(customer, make_product(quantity=5), 1)
        order, _ = order_service.place_order(customer.id, payment_method.id)

        response = client.put(f'/api/orders/{order.id}/status', headers=staff_headers, json={
            'order_status': ORDER_RETURN_REQUESTED,
        })
        assert response.status_code == 422

        response = client.put(f'/api/orders/{order.id}/status', headers=staff_headers, json={
            'order_status': ORDER_SHIPPED,
        })
        assert response.status_code == 200
        assert response.json['order']['order_status'] == ORDER_SHIPPED

    def test_staff_reject_requires_notes(
        self, client, staff_headers, customer, make_product, add_to_cart, payment_method
    ):
        add_to_cart(customer, make_product(quantity=5), 1)
        order, _ = order_service.place_order(customer.id, payment_method.id)

        response = client.post(f'/api/staff/orders/{order.id}/reject', headers=staff_headers, json={})
        assert response.status_code == 422

    def test_customer_cannot_see_other_order(
        self, client, make_user, customer_headers, make_product, add_to_cart, payment_method
    ):
        other = make_user()
        add_to_cart(other, make_product(quantity=5), 1)
        order, _ = order_service.place_order(other.id, payment_method.id)

        response = client.get(f'/api/orders/{order.id}', headers=customer_headers)
        assert response.status_code == 403

    def test_unknown_order_is_404(self, client, staff_headers):
        response = client.get('/api/orders/9999', headers=staff_headers)
        assert response.status_code == 404
