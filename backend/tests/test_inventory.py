"""
Stock guard, inventory alerts, manual adjustments and the ReorderRequest
lifecycle.
"""

import pytest

from storefront.models import InventoryAlert, Notification
from storefront.models.inventory import (
    ALERT_LOW_STOCK,
    ALERT_OUT_OF_STOCK,
    ALERT_REORDER_NEEDED,
    REORDER_APPROVED,
    REORDER_CANCELLED,
    REORDER_COMPLETED,
)
from storefront.permissions import Role
from storefront.services import inventory_service, reorder_service
from storefront.services.inventory_service import InventoryError
from storefront.services.reorder_service import ReorderError


# =============================================================================
# STOCK GUARD PREDICATES
# =============================================================================

class TestStockGuard:

    @pytest.mark.parametrize("quantity,threshold,auto,low,out,reorder", [
        (50, 10, False, False, False, False),
        (10, 10, False, True, False, False),
        (10, 10, True, True, False, True),
        (0, 10, True, True, True, True),
        (0, 0, False, True, True, False),
        (11, 10, True, False, False, False),
    ])
    def test_predicates(self, make_product, quantity, threshold, auto, low, out, reorder):
        product = make_product(quantity=quantity, low_stock_threshold=threshold, auto_reorder=auto)
        assert product.is_low_stock() is low
        assert product.is_out_of_stock() is out
        assert product.needs_reordering() is reorder

    def test_low_stock_query_matches_predicate(self, make_product):
        low = make_product(quantity=3)
        make_product(quantity=80)
        ids = [p.id for p in low.low_stock_query().all()]
        assert ids == [low.id]


# =============================================================================
# ALERTS
# =============================================================================

class TestCheckAndCreateAlerts:

    def test_low_stock_alert(self, make_product):
        product = make_product(quantity=5)
        created = inventory_service.check_and_create_alerts(product)
        assert [a.alert_type for a in created] == [ALERT_LOW_STOCK]

    def test_out_of_stock_takes_precedence_and_reorder_added(self, make_product):
        product = make_product(quantity=0, auto_reorder=True)
        created = inventory_service.check_and_create_alerts(product)
        assert [a.alert_type for a in created] == [ALERT_OUT_OF_STOCK, ALERT_REORDER_NEEDED]

    def test_healthy_product_raises_nothing(self, make_product):
        product = make_product(quantity=500)
        assert inventory_service.check_and_create_alerts(product) == []

    def test_open_alert_suppresses_new_ones(self, db_session, make_product):
        product = make_product(quantity=5)
        inventory_service.check_and_create_alerts(product)

        product.quantity = 0
        db_session.commit()
        assert inventory_service.check_and_create_alerts(product) == []
        assert InventoryAlert.query.filter_by(product_id=product.id).count() == 1

    def test_resolving_lifts_suppression(self, db_session, make_product):
        product = make_product(quantity=5)
        alert = inventory_service.check_and_create_alerts(product)[0]
        inventory_service.resolve_alert(alert.id)

        created = inventory_service.check_and_create_alerts(product)
        assert len(created) == 1

    def test_resolve_twice_rejected(self, make_product):
        product = make_product(quantity=5)
        alert = inventory_service.check_and_create_alerts(product)[0]
        inventory_service.resolve_alert(alert.id)
        with pytest.raises(InventoryError):
            inventory_service.resolve_alert(alert.id)

    def test_concurrent_checks_can_duplicate_alerts(self, monkeypatch, make_product):
        # Two callers that both read "no open alert" before either inserts.
        product = make_product(quantity=5)
        monkeypatch.setattr(inventory_service, "has_unresolved_alerts", lambda product_id: False)

        first = inventory_service.check_and_create_alerts(product)
        second = inventory_service.check_and_create_alerts(product)

        assert [a.alert_type for a in first] == [ALERT_LOW_STOCK]
        assert [a.alert_type for a in second] == [ALERT_LOW_STOCK]
        assert InventoryAlert.query.filter_by(product_id=product.id, is_resolved=False).count() == 2

    def test_check_all_products_counts_created(self, make_product):
        make_product(quantity=1)
        make_product(quantity=0, auto_reorder=True)
        make_product(quantity=100)
        assert inventory_service.check_all_products() == 3


# =============================================================================
# ADJUSTMENTS
# =============================================================================

class TestAdjustStock:

    @pytest.mark.parametrize("kind,amount,expected", [
        ("increase", 5, 25),
        ("decrease", 5, 15),
        ("decrease", 50, 0),
        ("set", 7, 7),
    ])
    def test_adjustment_types(self, admin, make_product, kind, amount, expected):
        product = make_product(quantity=20)
        product, old_quantity = inventory_service.adjust_stock(product.id, kind, amount, "count", admin.id)
        assert old_quantity == 20
        assert product.quantity == expected

    def test_unknown_type_rejected(self, admin, make_product):
        product = make_product(quantity=20)
        with pytest.raises(InventoryError):
            inventory_service.adjust_stock(product.id, "double", 5, "oops", admin.id)
        assert product.quantity == 20

    def test_adjustment_into_low_stock_raises_alert(self, admin, make_product):
        product = make_product(quantity=20)
        inventory_service.adjust_stock(product.id, "set", 2, "shrinkage", admin.id)
        assert InventoryAlert.query.filter_by(product_id=product.id, alert_type=ALERT_LOW_STOCK).count() == 1

    def test_settings_change_can_raise_alert(self, make_product):
        product = make_product(quantity=20)
        inventory_service.update_inventory_settings(product.id, 25, 40, True)
        types = {a.alert_type for a in InventoryAlert.query.filter_by(product_id=product.id)}
        assert types == {ALERT_LOW_STOCK, ALERT_REORDER_NEEDED}

    def test_low_stock_notifications_reach_admins(self, admin, make_product):
        make_product(quantity=1)
        make_product(quantity=2)
        make_product(quantity=90)
        assert inventory_service.send_low_stock_notifications() == 2
        assert Notification.query.filter_by(user_id=admin.id, type="low_stock").count() == 2


# =============================================================================
# REORDER LIFECYCLE
# =============================================================================

class TestReorderLifecycle:

    def _request(self, admin, product, quantity=100):
        return reorder_service.create_reorder_request(product.id, admin.id, quantity, 25000, "restock")

    def test_warehouse_approval_then_complete_credits_approved_quantity(
        self, admin, warehouse_manager, make_product
    ):
        product = make_product(quantity=3, auto_reorder=True)
        inventory_service.check_and_create_alerts(product)
        reorder = self._request(admin, product)

        reorder_service.warehouse_approve(reorder.id, warehouse_manager.id, 80, "partial")
        assert reorder.status == REORDER_APPROVED
        assert reorder.quantity_approved == 80

        reorder_service.complete(reorder.id)
        assert reorder.status == REORDER_COMPLETED
        assert product.quantity == 83
        assert InventoryAlert.query.filter_by(product_id=product.id, is_resolved=False).count() == 0

    def test_complete_falls_back_to_requested_quantity(self, admin, make_product):
        product = make_product(quantity=0)
        reorder = self._request(admin, product, quantity=60)
        reorder_service.approve(reorder.id)
        assert reorder.quantity_approved is None

        reorder_service.complete(reorder.id)
        assert product.quantity == 60

    def test_complete_requires_approval(self, admin, make_product):
        product = make_product(quantity=0)
        reorder = self._request(admin, product)
        with pytest.raises(ReorderError):
            reorder_service.complete(reorder.id)
        assert product.quantity == 0

    def test_model_complete_does_not_check_status(self, db_session, admin, make_product):
        product = make_product(quantity=2)
        inventory_service.check_and_create_alerts(product)
        reorder = self._request(admin, product, quantity=40)
        assert reorder.is_pending()

        credited = reorder.complete()
        db_session.commit()

        assert credited == 40
        assert reorder.status == REORDER_COMPLETED
        assert product.quantity == 42
        assert InventoryAlert.query.filter_by(product_id=product.id, is_resolved=False).count() == 0

    def test_complete_only_once(self, admin, make_product):
        product = make_product(quantity=0)
        reorder = self._request(admin, product, quantity=10)
        reorder_service.approve(reorder.id)
        reorder_service.complete(reorder.id)
        with pytest.raises(ReorderError):
            reorder_service.complete(reorder.id)
        assert product.quantity == 10

    def test_warehouse_reject_cancels_and_notifies_admin(self, admin, warehouse_manager, make_product):
        product = make_product(quantity=0)
        reorder = self._request(admin, product)
        reorder_service.warehouse_reject(reorder.id, warehouse_manager.id, "supplier unavailable")

        assert reorder.status == REORDER_CANCELLED
        assert reorder.warehouse_rejected_at is not None
        assert Notification.query.filter_by(user_id=admin.id, type="reorder_rejected").count() == 1

    def test_processed_request_cannot_be_decided_again(self, admin, warehouse_manager, make_product):
        product = make_product(quantity=0)
        reorder = self._request(admin, product)
        reorder_service.warehouse_approve(reorder.id, warehouse_manager.id, 50)
        with pytest.raises(ReorderError):
            reorder_service.warehouse_reject(reorder.id, warehouse_manager.id, "late")
        with pytest.raises(ReorderError):
            reorder_service.cancel(reorder.id)

    def test_create_validates_quantity(self, admin, make_product):
        product = make_product()
        with pytest.raises(ReorderError):
            reorder_service.create_reorder_request(product.id, admin.id, 0, 100)

    def test_warehouse_dashboard_counts(self, admin, make_product):
        product = make_product(quantity=0)
        self._request(admin, product)
        approved = self._request(admin, product)
        reorder_service.approve(approved.id)

        stats = reorder_service.warehouse_reorder_dashboard()["stats"]
        assert stats["pending_reorders"] == 1
        assert stats["approved_reorders"] == 1
        assert stats["total_value_pending_cents"] == 25000


class TestInventoryRoutes:

    def test_adjust_stock_endpoint(self, client, admin_headers, make_product):
        product = make_product(quantity=10)
        response = client.put(
            f'/api/inventory/products/{product.id}/adjust-stock',
            headers=admin_headers,
            json={'adjustment_type': 'increase', 'quantity': 15, 'reason': 'delivery'},
        )
        assert response.status_code == 200
        assert response.json['old_quantity'] == 10
        assert response.json['new_quantity'] == 25

    def test_adjust_stock_validates_type(self, client, admin_headers, make_product):
        product = make_product(quantity=10)
        response = client.put(
            f'/api/inventory/products/{product.id}/adjust-stock',
            headers=admin_headers,
            json={'adjustment_type': 'explode', 'quantity': 15, 'reason': 'x'},
        )
        assert response.status_code == 422
        assert 'adjustment_type' in response.json['errors']

    @pytest.mark.parametrize("quantity", [10 ** 19, 2_147_483_648])
    def test_adjust_stock_rejects_oversized_quantity(self, client, admin_headers, make_product, quantity):
        product = make_product(quantity=10)
        response = client.put(
            f'/api/inventory/products/{product.id}/adjust-stock',
            headers=admin_headers,
            json={'adjustment_type': 'increase', 'quantity': quantity, 'reason': 'delivery'},
        )
        assert response.status_code == 422
        assert 'quantity' in response.json['errors']
        assert product.quantity == 10

    def test_inventory_settings_reject_oversized_threshold(self, client, admin_headers, make_product):
        product = make_product()
        response = client.put(
            f'/api/inventory/products/{product.id}/settings',
            headers=admin_headers,
            json={'low_stock_threshold': 10 ** 19, 'reorder_quantity': 10 ** 19},
        )
        assert response.status_code == 422
        assert set(response.json['errors']) >= {'low_stock_threshold', 'reorder_quantity'}

    def test_warehouse_manager_can_view_but_not_manage(self, client, warehouse_headers, make_product):
        product = make_product(quantity=10)
        assert client.get('/api/inventory/dashboard', headers=warehouse_headers).status_code == 200
        response = client.put(
            f'/api/inventory/products/{product.id}/adjust-stock',
            headers=warehouse_headers,
            json={'adjustment_type': 'increase', 'quantity': 1, 'reason': 'x'},
        )
        assert response.status_code == 403

    def test_warehouse_approve_route(self, client, admin, warehouse_headers, make_product):
        product = make_product(quantity=0)
        reorder = reorder_service.create_reorder_request(product.id, admin.id, 40, 1000)
        response = client.post(
            f'/api/warehouse/reorders/{reorder.id}/approve',
            headers=warehouse_headers,
            json={'quantity_approved': 30, 'warehouse_notes': 'ok'},
        )
        assert response.status_code == 200
        assert response.json['reorder_request']['quantity_approved'] == 30

    def test_warehouse_reject_requires_notes(self, client, admin, warehouse_headers, make_product):
        product = make_product(quantity=0)
        reorder = reorder_service.create_reorder_request(product.id, admin.id, 40, 1000)
        response = client.post(
            f'/api/warehouse/reorders/{reorder.id}/reject',
            headers=warehouse_headers,
            json={},
        )
        assert response.status_code == 422
