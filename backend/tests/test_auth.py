"""
Authentication, session handling and role-based authorization tests.

Verifies that:
1. Unauthenticated requests get 401 on protected endpoints
2. Each role only reaches the endpoints its permissions allow
3. Session tokens are revoked on logout, password change and suspension
4. Unexpected errors roll back the session and return 500
"""

import pytest

from storefront.decorators import handle_service_errors
from storefront.extensions import db
from storefront.models import PaymentMethod
from storefront.permissions import Role, get_role_permissions, has_permission
from storefront.services import session_service

from conftest import PASSWORD, auth_headers, get_auth_token, token_for


# =============================================================================
# ROLE TABLE
# =============================================================================

class TestRolePermissions:

    def test_customer_only_shops(self):
        assert get_role_permissions(Role.CUSTOMER) == frozenset({"SHOP"})

    def test_admin_does_not_shop(self):
        assert not has_permission("admin", "SHOP")
        assert has_permission("admin", "WAREHOUSE_APPROVE")
        assert has_permission("admin", "PROCESS_ORDERS")

    def test_unknown_role_has_nothing(self):
        assert get_role_permissions("superuser") == frozenset()


# =============================================================================
# REGISTRATION & LOGIN
# =============================================================================

class TestAuthEndpoints:

    def test_register_returns_token_and_cart(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'name': 'New Customer',
            'email': 'New@Example.com',
            'password': PASSWORD,
            'password_confirmation': PASSWORD,
        })
        assert response.status_code == 201
        assert response.json['token_type'] == 'Bearer'
        assert response.json['user']['email'] == 'new@example.com'
        assert response.json['user']['role'] == 'customer'

        cart = client.get('/api/cart', headers=auth_headers(response.json['token']))
        assert cart.status_code == 200

    def test_register_rejects_confirmation_mismatch(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'name': 'New Customer',
            'email': 'new@example.com',
            'password': PASSWORD,
            'password_confirmation': 'something-else',
        })
        assert response.status_code == 422
        assert 'password' in response.json['errors']

    def test_register_rejects_duplicate_email(self, client, customer):
        response = client.post('/api/auth/register', json={
            'name': 'Dup',
            'email': customer.email,
            'password': PASSWORD,
            'password_confirmation': PASSWORD,
        })
        assert response.status_code == 422
        assert 'email' in response.json['errors']

    def test_login_and_me(self, client, customer):
        token = get_auth_token(client, customer.email)
        assert token

        response = client.get('/api/auth/user', headers=auth_headers(token))
        assert response.status_code == 200
        assert response.json['user']['id'] == customer.id

    def test_login_wrong_password(self, client, customer):
        response = client.post('/api/auth/login', json={'email': customer.email, 'password': 'nope-nope'})
        assert response.status_code == 401

    def test_suspended_user_cannot_log_in(self, client, db_session, customer):
        customer.is_active = False
        db_session.commit()
        response = client.post('/api/auth/login', json={'email': customer.email, 'password': PASSWORD})
        assert response.status_code == 403

    def test_logout_revokes_token(self, client, customer):
        token = token_for(customer)
        assert client.post('/api/auth/logout', headers=auth_headers(token)).status_code == 200
        assert client.get('/api/auth/user', headers=auth_headers(token)).status_code == 401

    def test_password_change_revokes_sessions(self, client, customer):
        token = token_for(customer)
        response = client.put('/api/auth/password', headers=auth_headers(token), json={
            'current_password': PASSWORD,
            'password': 'AnotherPass456!',
            'password_confirmation': 'AnotherPass456!',
        })
        assert response.status_code == 200
        assert client.get('/api/auth/user', headers=auth_headers(token)).status_code == 401

    def test_preferences_merge_known_keys(self, client, customer_headers):
        response = client.put('/api/auth/preferences', headers=customer_headers, json={
            'preferences': {'theme': 'dark', 'bogus': 1},
        })
        assert response.status_code == 200
        assert response.json['preferences']['theme'] == 'dark'
        assert 'bogus' not in response.json['preferences']

    def test_deactivated_user_token_stops_working(self, db_session, customer):
        token = token_for(customer)
        customer.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None


# =============================================================================
# UNAUTHENTICATED ACCESS
# =============================================================================

class TestUnauthenticatedAccess:
    """Protected endpoints reject requests without a token."""

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/cart"),
        ("get", "/api/orders"),
        ("get", "/api/notifications"),
        ("get", "/api/inventory/dashboard"),
        ("get", "/api/request-orders"),
        ("get", "/api/warehouse/reorders/pending"),
        ("get", "/api/staff"),
        ("get", "/api/users"),
        ("get", "/api/transactions"),
        ("get", "/api/dashboard/admin"),
        ("post", "/api/products"),
    ])
    def test_requires_token(self, client, db_session, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json['message'] == 'Unauthenticated.'

    def test_garbage_token(self, client, db_session):
        response = client.get('/api/cart', headers=auth_headers('not-a-real-token'))
        assert response.status_code == 401

    def test_public_catalog(self, client, db_session, make_product):
        make_product()
        assert client.get('/api/products').status_code == 200
        assert client.get('/api/categories').status_code == 200


# =============================================================================
# ROLE ENFORCEMENT
# =============================================================================

class TestRoleEnforcement:

    @pytest.mark.parametrize("path", [
        "/api/inventory/dashboard",
        "/api/users",
        "/api/staff",
        "/api/transactions",
        "/api/dashboard/admin",
        "/api/request-orders",
        "/api/warehouse/dashboard",
    ])
    def test_customer_blocked_from_back_office(self, client, customer_headers, path):
        response = client.get(path, headers=customer_headers)
        assert response.status_code == 403
        assert response.json['message'] == 'Unauthorized. Insufficient permissions.'

    @pytest.mark.parametrize("path", ["/api/cart", "/api/wishlist", "/api/users", "/api/inventory/dashboard"])
    def test_staff_blocked(self, client, staff_headers, path):
        assert client.get(path, headers=staff_headers).status_code == 403

    @pytest.mark.parametrize("path", ["/api/staff/orders/pending", "/api/staff/dashboard", "/api/orders"])
    def test_staff_allowed(self, client, staff_headers, path):
        assert client.get(path, headers=staff_headers).status_code == 200

    @pytest.mark.parametrize("path", [
        "/api/warehouse/reorders/pending",
        "/api/warehouse/dashboard",
        "/api/inventory/alerts",
        "/api/dashboard/warehouse",
    ])
    def test_warehouse_allowed(self, client, warehouse_headers, path):
        assert client.get(path, headers=warehouse_headers).status_code == 200

    @pytest.mark.parametrize("path", ["/api/users", "/api/orders", "/api/staff/orders/pending"])
    def test_warehouse_blocked(self, client, warehouse_headers, path):
        assert client.get(path, headers=warehouse_headers).status_code == 403

    def test_admin_cannot_use_cart(self, client, admin_headers):
        assert client.get('/api/cart', headers=admin_headers).status_code == 403

    def test_permission_denial_is_logged(self, client, customer_headers, caplog):
        with caplog.at_level("WARNING"):
            client.get('/api/users', headers=customer_headers)
        assert any("Permission denied" in r.getMessage() for r in caplog.records)


# =============================================================================
# ERROR HANDLING
# =============================================================================

class TestServiceErrorHandling:

    def test_unexpected_error_rolls_back_session(self, app, db_session, caplog):
        @handle_service_errors("save payment method")
        def failing_view():
            db.session.add(PaymentMethod(name="Half Written"))
            raise RuntimeError("gateway exploded")

        with app.test_request_context():
            with caplog.at_level("ERROR"):
                response, status = failing_view()

        assert status == 500
        assert response.get_json() == {"message": "Internal server error"}
        assert not db.session.new
        assert PaymentMethod.query.filter_by(name="Half Written").count() == 0
        assert any("Failed to save payment method" in r.getMessage() for r in caplog.records)
