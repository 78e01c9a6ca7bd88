"""
Flask CLI bootstrap and maintenance commands.
"""

from storefront.models import InventoryAlert, PaymentMethod, User


def test_inventory_check_alerts(app, make_product):
    make_product(quantity=0, auto_reorder=True)
    make_product(quantity=100)

    result = app.test_cli_runner().invoke(args=['inventory', 'check-alerts'])

    assert result.exit_code == 0
    assert '2 alert(s) created' in result.output
    assert InventoryAlert.query.count() == 2


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=['system', 'init'])
    assert first.exit_code == 0
    assert PaymentMethod.query.count() == 5
    assert User.query.filter_by(email='admin@storefront.local', role='admin').count() == 1

    second = runner.invoke(args=['system', 'init'])
    assert second.exit_code == 0
    assert 'SKIP User already exists: admin@storefront.local' in second.output
    assert User.query.count() == 3


def test_users_list_filters_by_role(app, admin, customer):
    result = app.test_cli_runner().invoke(args=['users', 'list', '--role', 'admin'])
    assert result.exit_code == 0
    assert admin.email in result.output
    assert customer.email not in result.output


def test_health_reports_degraded_without_payment_methods(client, db_session):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json['status'] == 'degraded'


def test_health_ok_once_initialized(client, payment_method):
    response = client.get('/health')
    assert response.json['status'] == 'healthy'
    assert response.json['checks']['database']['details']['payment_methods'] == 1
