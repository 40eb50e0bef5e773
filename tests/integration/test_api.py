"""
Integration tests for the JSON API blueprints.
"""

import pytest
from restopos.models import Order, OrderStatus, Stock, Table, TableStatus


class TestAuthentication:

    @pytest.mark.parametrize('method, url', [
        ('get', '/api/orders/'),
        ('post', '/api/orders/'),
        ('get', '/api/tables/'),
        ('get', '/api/stock/logs'),
    ])
    def test_login_required(self, anonymous_client, method, url):
        response = getattr(anonymous_client, method)(url, json={})
        assert response.status_code == 401
        assert response.get_json()['kind'] == 'unauthorized'


class TestOrdersApi:

    def test_create_and_fetch(self, client, session, product, table1):
        product_id, table_id = product.id, table1.id

        response = client.post('/api/orders/', json={
            'tableId': table_id,
            'items': [{'productId': product_id, 'quantity': 4}],
            'customerNote': 'No chili',
        })

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['status'] == 'PENDING'
        assert data['total'] == '22.00'
        assert data['customer_note'] == 'No chili'
        assert data['user_id'] == 1
        assert data['business_snapshot']['vatRate'] == '10.0'

        response = client.get(f"/api/orders/{data['id']}")
        assert response.status_code == 200
        assert response.get_json()['data']['order_number'] == data['order_number']

    def test_insufficient_stock_is_conflict(self, client, session, product, table1):
        response = client.post('/api/orders/', json={
            'tableId': table1.id,
            'items': [{'productId': product.id, 'quantity': 50}],
        })

        assert response.status_code == 409
        body = response.get_json()
        assert body['kind'] == 'conflict'
        assert body['available'] == 20

    def test_validation_errors(self, client, session, table1):
        response = client.post('/api/orders/', json={'tableId': table1.id, 'items': []})
        assert response.status_code == 400
        assert response.get_json()['kind'] == 'validation'

        response = client.post('/api/orders/', data='not json', content_type='text/plain')
        assert response.status_code == 400

    def test_unknown_order_is_404(self, client, session):
        response = client.get('/api/orders/999')
        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'

    def test_full_lifecycle(self, client, session, product, table1, table2):
        product_id, stock_id, table1_id, table2_id = product.id, product.stock.id, table1.id, table2.id

        created = client.post('/api/orders/', json={
            'tableId': table1_id, 'items': [{'productId': product_id, 'quantity': 2}]
        }).get_json()['data']
        order_id = created['id']

        response = client.put(f'/api/orders/{order_id}', json={
            'items': [{'productId': product_id, 'quantity': 3}], 'discount': 1
        })
        assert response.status_code == 200
        assert response.get_json()['data']['total'] == '15.50'

        response = client.patch(f'/api/orders/{order_id}/table', json={'tableId': table2_id})
        assert response.status_code == 200
        assert response.get_json()['data']['table_id'] == table2_id

        response = client.patch(f'/api/orders/{order_id}/pay', json={
            'paymentMethods': ['QR'], 'currency': 'USD'
        })
        assert response.status_code == 200
        paid = response.get_json()['data']
        assert paid['status'] == 'COMPLETED'
        assert paid['paid_usd'] == '15.50'
        assert paid['payment_method'] == 'QR'

        response = client.patch(f'/api/orders/{order_id}/cancel')
        assert response.status_code == 409

        session.expire_all()
        assert session.get(Stock, stock_id).quantity == 17
        assert session.get(Table, table1_id).status is TableStatus.AVAILABLE
        assert session.get(Table, table2_id).status is TableStatus.AVAILABLE
        assert session.get(Order, order_id).status is OrderStatus.COMPLETED

    def test_reassign_requires_table_id(self, client, session, product, table1):
        order_id = client.post('/api/orders/', json={
            'tableId': table1.id, 'items': [{'productId': product.id, 'quantity': 1}]
        }).get_json()['data']['id']

        response = client.patch(f'/api/orders/{order_id}/table', json={'tableId': 'two'})
        assert response.status_code == 400

    def test_list_with_filters(self, client, session, product, table1, table2):
        product_id = product.id
        for table_id in (table1.id, table2.id):
            client.post('/api/orders/', json={
                'tableId': table_id, 'items': [{'productId': product_id, 'quantity': 1}]
            })

        body = client.get('/api/orders/?status=pending&limit=1').get_json()
        assert body['pagination'] == {'page': 1, 'limit': 1, 'total': 2, 'pages': 2}
        assert len(body['data']) == 1

        response = client.get('/api/orders/?status=LOST')
        assert response.status_code == 400

    def test_limit_is_clamped(self, client, session):
        body = client.get('/api/orders/?limit=-1&page=-3').get_json()
        assert body['pagination'] == {'page': 1, 'limit': 1, 'total': 0, 'pages': 0}

        body = client.get('/api/stock/logs?limit=0').get_json()
        assert body['pagination']['limit'] == 1

    def test_unknown_route_is_http_error(self, client, session):
        response = client.get('/api/nowhere')
        assert response.status_code == 404
        assert response.get_json()['kind'] == 'http'


class TestTablesApi:

    def test_list_tables(self, client, session, table1, table2):
        body = client.get('/api/tables/').get_json()
        assert [t['number'] for t in body['data']] == [1, 2]

    def test_update_status(self, client, session, table1):
        response = client.patch(f'/api/tables/{table1.id}/status', json={'status': 'RESERVED'})
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'RESERVED'

    def test_cannot_free_table_with_pending_order(self, client, session, product, table1):
        table_id = table1.id
        client.post('/api/orders/', json={
            'tableId': table_id, 'items': [{'productId': product.id, 'quantity': 1}]
        })

        response = client.patch(f'/api/tables/{table_id}/status', json={'status': 'AVAILABLE'})
        assert response.status_code == 409
        assert 'active order' in response.get_json()['message']

    def test_status_required(self, client, session, table1):
        response = client.patch(f'/api/tables/{table1.id}/status', json={})
        assert response.status_code == 400


class TestStockApi:

    def test_adjust_and_history(self, client, session, product):
        stock_id = product.stock.id

        response = client.post(f'/api/stock/{stock_id}/adjust', json={'type': 'ADD', 'quantity': 5, 'note': 'Delivery'})
        assert response.status_code == 200
        assert response.get_json()['data']['quantity'] == 25

        response = client.patch(f'/api/stock/{stock_id}/quantity', json={'quantity': 3})
        assert response.get_json()['data']['quantity'] == 3

        body = client.get(f'/api/stock/logs?stockId={stock_id}').get_json()
        assert body['pagination']['total'] == 2
        assert [log['type'] for log in body['data']] == ['REMOVE', 'ADD']
        assert body['data'][1]['user_id'] == 1

        alerts = client.get('/api/stock/alerts/low-stock').get_json()['data']
        assert [a['id'] for a in alerts] == [stock_id]

    def test_min_stock(self, client, session, product):
        response = client.patch(f'/api/stock/{product.stock.id}/min-stock', json={'minStock': 50})
        assert response.status_code == 200
        assert response.get_json()['data']['is_low'] is True

    def test_bad_quantity(self, client, session, product):
        response = client.post(f'/api/stock/{product.stock.id}/adjust', json={'type': 'ADD', 'quantity': 'lots'})
        assert response.status_code == 400

    def test_negative_adjustment_is_rejected(self, client, session, product):
        stock_id = product.stock.id
        response = client.post(f'/api/stock/{stock_id}/adjust', json={'type': 'ADD', 'quantity': -5})
        assert response.status_code == 400

        session.expire_all()
        assert session.get(Stock, stock_id).quantity == 20

    def test_invalid_log_type_filter(self, client, session):
        response = client.get('/api/stock/logs?type=GIFT')
        assert response.status_code == 400


def test_metrics_endpoint(client, session, product, table1):
    client.post('/api/orders/', json={'tableId': table1.id, 'items': [{'productId': product.id, 'quantity': 1}]})

    response = client.get('/metrics')
    assert response.status_code == 200
    assert b'order_operations_total' in response.data
