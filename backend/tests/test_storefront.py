"""
Customer-facing storefront: catalog, cart, wishlist, reviews and notifications.
"""

import pytest

from storefront.errors import NotFoundError
from storefront.models import Category, Notification, OrderItem, Product
from storefront.services import cart_service, catalog_service, notification_service, order_service
from storefront.services.cart_service import CartError
from storefront.validation import ValidationError


# =============================================================================
# CATALOG
# =============================================================================

class TestCatalog:

    def test_search_filters_and_sorts(self, make_product):
        make_product(name="Red Mug", price_cents=900)
        make_product(name="Blue Mug", price_cents=1500)
        make_product(name="Teapot", price_cents=3000)
        make_product(name="Hidden Mug", price_cents=100, is_active=False)

        names = [p.name for p in catalog_service.search_products(q="mug", sort_by="price", sort_order="asc")]
        assert names == ["Red Mug", "Blue Mug"]

        names = [p.name for p in catalog_service.search_products(min_price_cents=1000, max_price_cents=2000)]
        assert names == ["Blue Mug"]

    def test_products_by_category(self, db_session, make_product):
        category = catalog_service.create_category("Kitchen Ware")
        assert category.slug == "kitchen-ware"

        product = catalog_service.create_product(
            {"name": "Pan", "price_cents": 2500, "quantity": 8}, [category.id]
        )
        make_product(name="Unrelated")

        found, products = catalog_service.products_by_category("kitchen-ware")
        assert found.id == category.id
        assert [p.id for p in products] == [product.id]

    def test_duplicate_names_get_unique_slugs(self, db_session):
        first = catalog_service.create_brand("Acme")
        second = catalog_service.create_brand("Acme")
        assert first.slug != second.slug

    def test_unknown_category_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product({"name": "X", "price_cents": 1, "quantity": 1}, [999])

    def test_delete_product_without_orders(self, make_product):
        product = make_product()
        assert catalog_service.delete_product(product.id) is True
        assert Product.query.count() == 0

    def test_delete_product_on_order_deactivates(self, customer, make_product, add_to_cart, payment_method):
        product = make_product(quantity=5)
        add_to_cart(customer, product, 1)
        order_service.place_order(customer.id, payment_method.id)

        assert catalog_service.delete_product(product.id) is False
        assert product.is_active is False
        assert OrderItem.query.count() == 1

    def test_quantity_update_to_low_stock_alerts(self, admin, make_product):
        product = make_product(quantity=50)
        catalog_service.update_product(product.id, {"quantity": 3})
        assert Notification.query.filter_by(user_id=admin.id, type="low_stock").count() == 1


class TestCatalogRoutes:

    def test_create_product(self, client, admin_headers, db_session):
        category = Category(name="Toys", slug="toys")
        db_session.add(category)
        db_session.commit()

        response = client.post('/api/products', headers=admin_headers, json={
            'name': 'Kite',
            'price_cents': 1999,
            'quantity': 12,
            'categories': [category.id],
        })
        assert response.status_code == 201
        assert response.json['product']['categories'][0]['slug'] == 'toys'

    def test_create_product_validation(self, client, admin_headers):
        response = client.post('/api/products', headers=admin_headers, json={
            'name': 'Kite',
            'price_cents': -5,
        })
        assert response.status_code == 422
        assert 'price_cents' in response.json['errors']
        assert 'quantity' in response.json['errors']

    def test_customer_cannot_create_product(self, client, customer_headers):
        response = client.post('/api/products', headers=customer_headers, json={
            'name': 'Kite', 'price_cents': 1, 'quantity': 1,
        })
        assert response.status_code == 403

    def test_inactive_product_hidden(self, client, make_product):
        product = make_product(is_active=False)
        assert client.get(f'/api/products/{product.id}').status_code == 404

    def test_search_rejects_unknown_sort(self, client, db_session):
        response = client.get('/api/products/search?sort_by=colour')
        assert response.status_code == 422

    def test_search_rejects_oversized_category(self, client, db_session):
        response = client.get(f'/api/products/search?category_id={10 ** 19}')
        assert response.status_code == 422
        assert 'category_id' in response.json['errors']

    def test_product_detail_includes_rating(self, client, make_product):
        product = make_product()
        response = client.get(f'/api/products/{product.id}')
        assert response.status_code == 200
        assert response.json['average_rating'] == 0.0
        assert response.json['review_count'] == 0


# =============================================================================
# CART
# =============================================================================

class TestCart:

    def test_add_merges_lines(self, customer, make_product):
        product = make_product(quantity=10, price_cents=250)
        cart_service.add_item(customer.id, product.id, 2)
        cart = cart_service.add_item(customer.id, product.id, 3)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5
        assert cart.total_cents() == 1250

    def test_merged_quantity_must_fit_stock(self, customer, make_product):
        product = make_product(quantity=4)
        cart_service.add_item(customer.id, product.id, 3)
        with pytest.raises(CartError):
            cart_service.add_item(customer.id, product.id, 2)

    def test_inactive_product_not_addable(self, customer, make_product):
        product = make_product(is_active=False)
        with pytest.raises(NotFoundError):
            cart_service.add_item(customer.id, product.id, 1)

    def test_cannot_touch_other_users_items(self, make_user, customer, make_product):
        product = make_product()
        other = make_user()
        cart = cart_service.add_item(other.id, product.id, 1)
        with pytest.raises(NotFoundError):
            cart_service.remove_item(customer.id, cart.items[0].id)

    def test_cart_routes(self, client, customer_headers, make_product):
        product = make_product(quantity=3)
        response = client.post('/api/cart/add', headers=customer_headers, json={
            'product_id': product.id, 'quantity': 2,
        })
        assert response.status_code == 200
        item_id = response.json['cart']['items'][0]['id']

        response = client.put(f'/api/cart/items/{item_id}', headers=customer_headers, json={'quantity': 5})
        assert response.status_code == 400

        response = client.delete('/api/cart/clear', headers=customer_headers)
        assert response.status_code == 200
        assert response.json['cart']['items'] == []

    def test_add_requires_positive_quantity(self, client, customer_headers, make_product):
        product = make_product()
        response = client.post('/api/cart/add', headers=customer_headers, json={
            'product_id': product.id, 'quantity': 0,
        })
        assert response.status_code == 422

    def test_add_rejects_oversized_values(self, client, customer_headers, db_session):
        response = client.post('/api/cart/add', headers=customer_headers, json={
            'product_id': 10 ** 19, 'quantity': 10 ** 19,
        })
        assert response.status_code == 422
        assert set(response.json['errors']) == {'product_id', 'quantity'}


# =============================================================================
# WISHLIST & REVIEWS
# =============================================================================

class TestWishlistAndReviews:

    def test_wishlist_add_twice(self, client, customer_headers, make_product):
        product = make_product()
        assert client.post(f'/api/wishlist/{product.id}', headers=customer_headers).status_code == 201
        assert client.post(f'/api/wishlist/{product.id}', headers=customer_headers).status_code == 400
        assert len(client.get('/api/wishlist', headers=customer_headers).json) == 1
        assert client.delete(f'/api/wishlist/{product.id}', headers=customer_headers).status_code == 200

    def test_one_review_per_product(self, client, customer_headers, make_product):
        product = make_product()
        payload = {'rating': 4, 'comment': 'Solid'}
        response = client.post(f'/api/products/{product.id}/reviews', headers=customer_headers, json=payload)
        assert response.status_code == 201
        response = client.post(f'/api/products/{product.id}/reviews', headers=customer_headers, json=payload)
        assert response.status_code == 400

        listing = client.get(f'/api/products/{product.id}/reviews')
        assert listing.json['total'] == 1

    def test_rating_range(self, client, customer_headers, make_product):
        product = make_product()
        response = client.post(f'/api/products/{product.id}/reviews', headers=customer_headers, json={
            'rating': 6, 'comment': 'Too good',
        })
        assert response.status_code == 422

    def test_admin_can_delete_any_review(self, client, customer_headers, admin_headers, make_product):
        product = make_product()
        response = client.post(f'/api/products/{product.id}/reviews', headers=customer_headers, json={
            'rating': 1, 'comment': 'spam',
        })
        review_id = response.json['review']['id']
        assert client.delete(f'/api/reviews/{review_id}', headers=admin_headers).status_code == 200


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class TestNotifications:

    def test_notify_deduplicates_recipients(self, customer):
        written = notification_service.notify(
            [customer, customer.id], "order_status_changed", "Title", "Body", order_id=1
        )
        assert written == 1

    def test_notify_nobody(self, db_session):
        assert notification_service.notify([], "x", "t", "m") == 0

    def test_read_flow(self, client, customer, customer_headers):
        notification_service.notify(customer, "order_approved", "A", "first")
        notification_service.notify(customer, "order_approved", "B", "second")

        response = client.get('/api/notifications', headers=customer_headers)
        assert response.json['unread_count'] == 2
        first_id = response.json['data'][0]['id']

        assert client.put(f'/api/notifications/{first_id}/read', headers=customer_headers).status_code == 200
        assert client.get('/api/notifications/unread', headers=customer_headers).json['count'] == 1

        response = client.put('/api/notifications/read-all', headers=customer_headers)
        assert response.json['updated'] == 1

    def test_cannot_touch_other_users_notifications(self, client, make_user, customer_headers):
        other = make_user()
        notification_service.notify(other, "order_approved", "A", "theirs")
        notification = Notification.query.filter_by(user_id=other.id).first()

        response = client.delete(f'/api/notifications/{notification.id}', headers=customer_headers)
        assert response.status_code == 404
