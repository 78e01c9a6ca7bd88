"""
RequestOrder dual approval: admin first, then warehouse, stock credited once.
"""

import pytest

from storefront.models import Notification
from storefront.models.inventory import REQUEST_APPROVED, REQUEST_PENDING, REQUEST_REJECTED
from storefront.services import request_order_service
from storefront.services.request_order_service import RequestOrderError


@pytest.fixture
def product(make_product):
    return make_product(name="Widget", quantity=4)


@pytest.fixture
def request_order(admin, product):
    return request_order_service.create_request_order(product.id, 20, admin.id, "restock widgets")


class TestApprovalChain:

    def test_new_request_is_pending_everywhere(self, request_order):
        assert request_order.status == REQUEST_PENDING
        assert request_order.admin_approval_status == REQUEST_PENDING
        assert request_order.warehouse_approval_status == REQUEST_PENDING

    def test_warehouse_before_admin_changes_nothing(self, request_order, product):
        with pytest.raises(RequestOrderError):
            request_order_service.warehouse_decision(request_order.id, REQUEST_APPROVED)

        assert request_order.warehouse_approval_status == REQUEST_PENDING
        assert request_order.status == REQUEST_PENDING
        assert product.quantity == 4

    def test_full_approval_credits_stock_once(self, request_order, product):
        request_order_service.admin_decision(request_order.id, REQUEST_APPROVED)
        assert request_order.status == REQUEST_PENDING

        request_order_service.warehouse_decision(request_order.id, REQUEST_APPROVED, "received")
        assert request_order.status == REQUEST_APPROVED
        assert product.quantity == 24

        with pytest.raises(RequestOrderError):
            request_order_service.warehouse_decision(request_order.id, REQUEST_APPROVED)
        assert product.quantity == 24

    def test_admin_reject_is_terminal(self, request_order, product):
        request_order_service.admin_decision(request_order.id, REQUEST_REJECTED, "not needed")
        assert request_order.status == REQUEST_REJECTED

        with pytest.raises(RequestOrderError):
            request_order_service.warehouse_decision(request_order.id, REQUEST_APPROVED)
        with pytest.raises(RequestOrderError):
            request_order_service.admin_decision(request_order.id, REQUEST_APPROVED)
        assert product.quantity == 4

    def test_warehouse_reject_leaves_stock(self, request_order, product):
        request_order_service.admin_decision(request_order.id, REQUEST_APPROVED)
        request_order_service.warehouse_decision(request_order.id, REQUEST_REJECTED, "no room")
        assert request_order.status == REQUEST_REJECTED
        assert product.quantity == 4

    def test_invalid_decision(self, request_order):
        with pytest.raises(RequestOrderError):
            request_order_service.admin_decision(request_order.id, "Maybe")

    def test_notifications_follow_the_chain(self, admin, warehouse_manager, request_order):
        request_order_service.admin_decision(request_order.id, REQUEST_APPROVED)
        assert Notification.query.filter_by(
            user_id=warehouse_manager.id, type="request_order_admin_approved"
        ).count() == 1

        request_order_service.warehouse_decision(request_order.id, REQUEST_APPROVED)
        assert Notification.query.filter_by(
            user_id=admin.id, type="request_order_warehouse_decision"
        ).count() == 1


class TestVisibility:

    def test_warehouse_only_lists_admin_approved(self, admin, warehouse_manager, product):
        pending = request_order_service.create_request_order(product.id, 5, admin.id)
        approved = request_order_service.create_request_order(product.id, 6, admin.id)
        request_order_service.admin_decision(approved.id, REQUEST_APPROVED)

        seen = [r.id for r in request_order_service.list_request_orders(warehouse_manager)]
        assert seen == [approved.id]

        seen_by_admin = {r.id for r in request_order_service.list_request_orders(admin)}
        assert seen_by_admin == {pending.id, approved.id}


class TestRequestOrderRoutes:

    def test_create(self, client, admin_headers, product):
        response = client.post('/api/request-orders', headers=admin_headers, json={
            'product_id': product.id,
            'quantity': 10,
        })
        assert response.status_code == 201
        assert response.json['request_order']['status'] == REQUEST_PENDING

    def test_create_validates_quantity(self, client, admin_headers, product):
        response = client.post('/api/request-orders', headers=admin_headers, json={
            'product_id': product.id,
            'quantity': 0,
        })
        assert response.status_code == 422

    def test_create_rejects_oversized_values(self, client, admin_headers, product):
        response = client.post('/api/request-orders', headers=admin_headers, json={
            'product_id': 10 ** 19,
            'quantity': 10 ** 19,
        })
        assert response.status_code == 422
        assert set(response.json['errors']) == {'product_id', 'quantity'}

    def test_warehouse_cannot_create(self, client, warehouse_headers, product):
        response = client.post('/api/request-orders', headers=warehouse_headers, json={
            'product_id': product.id,
            'quantity': 10,
        })
        assert response.status_code == 403

    def test_warehouse_approval_before_admin_is_400(self, client, warehouse_headers, request_order):
        response = client.put(
            f'/api/request-orders/{request_order.id}/warehouse-approval',
            headers=warehouse_headers,
            json={'status': REQUEST_APPROVED},
        )
        assert response.status_code == 400

    def test_warehouse_cannot_see_unapproved(self, client, warehouse_headers, request_order):
        response = client.get(f'/api/request-orders/{request_order.id}', headers=warehouse_headers)
        assert response.status_code == 404

    def test_full_chain_over_http(self, client, admin_headers, warehouse_headers, request_order, product):
        response = client.put(
            f'/api/request-orders/{request_order.id}/admin-approval',
            headers=admin_headers,
            json={'status': REQUEST_APPROVED, 'notes': 'go'},
        )
        assert response.status_code == 200

        response = client.put(
            f'/api/request-orders/{request_order.id}/warehouse-approval',
            headers=warehouse_headers,
            json={'status': REQUEST_APPROVED},
        )
        assert response.status_code == 200
        assert response.json['request_order']['status'] == REQUEST_APPROVED
        assert product.quantity == 24
