import pytest

ADDRESS = '221B Baker Street, London'


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role='admin')


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'healthy'


def test_register_login_and_me(client):
    response = client.post('/api/auth/register', json={
        'username': 'newbie', 'email': 'newbie@example.com', 'password': 'secret123'})
    assert response.status_code == 201

    response = client.post('/api/auth/login', json={'email': 'newbie@example.com', 'password': 'secret123'})
    body = response.get_json()
    assert body['success'] is True
    token = body['data']['token']

    response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert response.get_json()['data']['username'] == 'newbie'


def test_register_reports_field_errors(client):
    response = client.post('/api/auth/register', json={'username': 'x', 'email': 'nope', 'password': '1'})
    body = response.get_json()
    assert response.status_code == 400
    assert body['type'] == 'validation_error'
    assert {d['field'] for d in body['details']} >= {'username', 'email', 'password'}


def test_protected_routes_need_token(client):
    assert client.get('/api/orders/my-orders').status_code == 401
    response = client.get('/api/orders/my-orders', headers={'Authorization': 'Bearer garbage'})
    assert response.status_code == 401
    assert response.get_json()['type'] == 'authentication_error'


def test_admin_routes_reject_customers(client, customer, auth_header):
    response = client.get('/api/orders', headers=auth_header(customer))
    assert response.status_code == 403
    assert response.get_json()['success'] is False


def test_order_flow_over_http(client, customer, admin, make_product, auth_header, stock_of):
    product = make_product(price='10.00', stock=5)

    response = client.post('/api/orders', headers=auth_header(customer), json={
        'items': [{'product_id': product.id, 'quantity': 2}],
        'shipping_address': ADDRESS,
    })
    assert response.status_code == 201
    order = response.get_json()['data']
    assert order['total_amount'] == 20.0
    assert order['status'] == 'pending'
    assert order['items'][0]['unit_price'] == 10.0
    assert stock_of(product.id) == 3

    response = client.put(f"/api/orders/{order['id']}/status", headers=auth_header(customer),
                          json={'status': 'confirmed'})
    assert response.status_code == 403

    response = client.put(f"/api/orders/{order['id']}/status", headers=auth_header(admin),
                          json={'status': 'shipped'})
    assert response.status_code == 422
    assert response.get_json()['type'] == 'business_logic_error'

    response = client.put(f"/api/orders/{order['id']}/status", headers=auth_header(customer),
                          json={'status': 'cancelled'})
    assert response.status_code == 200
    assert response.get_json()['data']['payment_status'] == 'refunded'
    assert stock_of(product.id) == 5


def test_order_over_stock_is_rejected(client, customer, make_product, auth_header, stock_of):
    product = make_product(stock=8)

    response = client.post('/api/orders', headers=auth_header(customer), json={
        'items': [{'product_id': product.id, 'quantity': 100}],
        'shipping_address': ADDRESS,
    })

    assert response.status_code == 422
    assert stock_of(product.id) == 8


def test_orders_are_private(client, make_user, make_product, auth_header):
    owner, stranger = make_user(), make_user()
    product = make_product(stock=5)
    response = client.post('/api/orders', headers=auth_header(owner), json={
        'items': [{'product_id': product.id, 'quantity': 1}], 'shipping_address': ADDRESS})
    order_id = response.get_json()['data']['id']

    assert client.get(f'/api/orders/{order_id}', headers=auth_header(owner)).status_code == 200
    assert client.get(f'/api/orders/{order_id}', headers=auth_header(stranger)).status_code == 403
    assert client.delete(f'/api/orders/{order_id}', headers=auth_header(stranger)).status_code == 403

    response = client.post('/api/orders', headers=auth_header(stranger), json={
        'user_id': owner.id, 'items': [{'product_id': product.id, 'quantity': 1}], 'shipping_address': ADDRESS})
    assert response.status_code == 403


def test_payment_status_endpoint(client, customer, admin, make_product, auth_header):
    product = make_product(stock=5)
    response = client.post('/api/orders', headers=auth_header(customer), json={
        'items': [{'product_id': product.id, 'quantity': 1}], 'shipping_address': ADDRESS})
    order_id = response.get_json()['data']['id']

    response = client.put(f'/api/orders/{order_id}/payment', headers=auth_header(admin),
                          json={'payment_status': 'paid'})
    assert response.status_code == 200
    assert response.get_json()['data']['payment_status'] == 'paid'

    response = client.put(f'/api/orders/{order_id}/payment', headers=auth_header(admin),
                          json={'payment_status': 'failed'})
    assert response.status_code == 422


def test_inventory_reserve_and_release(client, customer, make_product, auth_header, stock_of):
    product = make_product(stock=8)
    url = f'/api/inventory/product/{product.id}'

    response = client.post(f'{url}/reserve', headers=auth_header(customer), json={'quantity': 100})
    assert response.status_code == 422
    assert stock_of(product.id) == 8

    response = client.post(f'{url}/reserve', headers=auth_header(customer), json={'quantity': 3})
    assert response.status_code == 200
    assert response.get_json()['data']['items'][0]['remaining'] == 5

    response = client.post(f'{url}/release', headers=auth_header(customer), json={'quantity': 3})
    assert response.status_code == 200
    assert stock_of(product.id) == 8


def test_inventory_check_and_admin_updates(client, admin, customer, make_product, auth_header):
    product = make_product(stock=8)

    response = client.post('/api/inventory/check', json={'items': [{'product_id': product.id, 'quantity': 10}]})
    data = response.get_json()['data']
    assert data['all_available'] is False
    assert data['items'][0]['available'] == 8

    url = f'/api/inventory/product/{product.id}/stock'
    assert client.put(url, headers=auth_header(customer), json={'quantity': 1}).status_code == 403

    response = client.put(url, headers=auth_header(admin), json={'quantity': 2, 'operation': 'add'})
    assert response.get_json()['data']['quantity'] == 10

    response = client.put(url, headers=auth_header(admin), json={'quantity': -1})
    assert response.status_code == 400


def test_review_flow_over_http(client, make_user, make_product, auth_header):
    product = make_product()
    users = [make_user() for _ in range(3)]
    ids = []
    for user, rating in zip(users, (5, 4, 3)):
        response = client.post('/api/reviews', headers=auth_header(user),
                               json={'product_id': product.id, 'rating': rating})
        assert response.status_code == 201
        ids.append(response.get_json()['data']['id'])

    response = client.post('/api/reviews', headers=auth_header(users[0]),
                           json={'product_id': product.id, 'rating': 1})
    assert response.status_code == 409

    product_json = client.get(f'/api/products/{product.id}').get_json()['data']
    assert product_json['average_rating'] == 4.0
    assert product_json['review_count'] == 3

    assert client.delete(f'/api/reviews/{ids[2]}', headers=auth_header(users[0])).status_code == 403
    assert client.delete(f'/api/reviews/{ids[2]}', headers=auth_header(users[2])).status_code == 200

    stats = client.get(f'/api/reviews/product/{product.id}/stats').get_json()['data']
    assert stats['average_rating'] == 4.5
    assert stats['total_reviews'] == 2


def test_catalog_admin_endpoints(client, admin, auth_header):
    response = client.post('/api/categories', headers=auth_header(admin),
                           json={'name': 'Sneakers', 'slug': 'sneakers'})
    assert response.status_code == 201
    category_id = response.get_json()['data']['id']

    response = client.post('/api/products', headers=auth_header(admin), json={
        'name': 'Court Classic', 'price': '89.50', 'sku': 'cc-01',
        'category_id': category_id, 'initial_stock': 7})
    assert response.status_code == 201
    product = response.get_json()['data']
    assert product['price'] == 89.5
    assert product['inventory']['quantity'] == 7

    response = client.get('/api/products', query_string={'category_id': category_id})
    body = response.get_json()
    assert body['pagination']['total'] == 1

    assert client.get('/api/categories/slug/sneakers').status_code == 200
    assert client.get('/api/products/sku/CC-01').get_json()['data']['id'] == product['id']


def test_unknown_resources_return_404(client):
    assert client.get('/api/products/999').status_code == 404
    assert client.get('/api/reviews/999').status_code == 404
    response = client.get('/api/no-such-route')
    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_cancel_through_delete(client, customer, make_product, auth_header, stock_of):
    product = make_product(price='10.00', stock=5)
    response = client.post('/api/orders', headers=auth_header(customer), json={
        'items': [{'product_id': product.id, 'quantity': 2}], 'shipping_address': ADDRESS})
    order_id = response.get_json()['data']['id']
    assert stock_of(product.id) == 3

    response = client.delete(f'/api/orders/{order_id}', headers=auth_header(customer),
                             json={'reason': 'ordered by mistake'})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'cancelled'
    assert data['payment_status'] == 'refunded'
    assert stock_of(product.id) == 5

    response = client.delete(f'/api/orders/{order_id}', headers=auth_header(customer))
    assert response.status_code == 409
    assert response.get_json()['type'] == 'conflict_error'
    assert stock_of(product.id) == 5


def test_delivered_order_cannot_be_cancelled(client, customer, admin, make_product, auth_header, stock_of):
    product = make_product(stock=5)
    response = client.post('/api/orders', headers=auth_header(customer), json={
        'items': [{'product_id': product.id, 'quantity': 1}], 'shipping_address': ADDRESS})
    order_id = response.get_json()['data']['id']
    for status in ('confirmed', 'shipped', 'delivered'):
        response = client.put(f'/api/orders/{order_id}/status', headers=auth_header(admin), json={'status': status})
        assert response.status_code == 200

    response = client.delete(f'/api/orders/{order_id}', headers=auth_header(customer))
    assert response.status_code == 422
    assert response.get_json()['type'] == 'business_logic_error'
    assert stock_of(product.id) == 4


@pytest.mark.parametrize('field', ['name', 'price', 'is_active'])
def test_product_update_rejects_null(client, admin, make_product, auth_header, field):
    product = make_product(name='Court Classic')

    response = client.put(f'/api/products/{product.id}', headers=auth_header(admin), json={field: None})

    assert response.status_code == 400
    body = response.get_json()
    assert body['type'] == 'validation_error'
    assert body['details'][0]['field'] == field
    assert client.get(f'/api/products/{product.id}').get_json()['data']['name'] == 'Court Classic'


@pytest.mark.parametrize('field', ['name', 'slug', 'is_active'])
def test_category_update_rejects_null(client, admin, auth_header, field):
    response = client.post('/api/categories', headers=auth_header(admin), json={'name': 'Boots', 'slug': 'boots'})
    category_id = response.get_json()['data']['id']

    response = client.put(f'/api/categories/{category_id}', headers=auth_header(admin), json={field: None})

    assert response.status_code == 400
    assert response.get_json()['type'] == 'validation_error'


def test_account_self_service(client, customer, make_user, auth_header):
    other = make_user()
    headers = auth_header(customer)
    email = customer.email

    response = client.get(f'/api/auth/check-email/{email.upper()}')
    assert response.get_json()['data'] == {'email': email, 'available': False}
    assert client.get('/api/auth/check-username/free-name').get_json()['data']['available'] is True

    response = client.put('/api/auth/profile', headers=headers, json={'first_name': 'Ann'})
    assert response.status_code == 200
    assert response.get_json()['data']['first_name'] == 'Ann'
    assert client.put('/api/auth/profile', headers=headers, json={'email': other.email}).status_code == 409
    assert client.put('/api/auth/profile', headers=headers, json={'username': None}).status_code == 400

    response = client.put('/api/auth/change-password', headers=headers,
                          json={'current_password': 'wrong', 'new_password': 'newsecret'})
    assert response.status_code == 401
    response = client.put('/api/auth/change-password', headers=headers,
                          json={'current_password': 'secret123', 'new_password': 'newsecret'})
    assert response.status_code == 200
    response = client.post('/api/auth/login', json={'email': email, 'password': 'newsecret'})
    assert response.status_code == 200

    assert client.delete('/api/auth/deactivate', headers=headers).status_code == 200
    assert client.get('/api/auth/me', headers=headers).status_code == 401
    response = client.post('/api/auth/login', json={'email': email, 'password': 'newsecret'})
    assert response.status_code == 401


def test_product_discovery_endpoints(client, make_product):
    product = make_product(name='Trail runner', price='80.00')
    make_product(name='Road runner', price='120.00')

    response = client.get('/api/products/search', query_string={'q': 'runner', 'max_price': '100'})
    assert [p['name'] for p in response.get_json()['data']] == ['Trail runner']
    assert client.get('/api/products/search').status_code == 400
    assert client.get('/api/products/search', query_string={'q': 'x', 'min_price': 'abc'}).status_code == 400

    assert len(client.get('/api/products/featured').get_json()['data']) == 2
    assert client.get(f'/api/products/{product.id}/related').get_json()['data'] == []
    assert client.get('/api/products/999/related').status_code == 404
    assert client.get('/api/products/stats').get_json()['data']['total'] == 2
    assert client.get('/api/categories/stats').get_json()['data']['total'] == 0


def test_category_products_endpoint(client, admin, make_product, auth_header):
    response = client.post('/api/categories', headers=auth_header(admin), json={'name': 'Boots', 'slug': 'boots'})
    category_id = response.get_json()['data']['id']
    make_product(name='Chelsea', category_id=category_id)

    body = client.get(f'/api/categories/{category_id}/products').get_json()
    assert body['data']['category']['slug'] == 'boots'
    assert [p['name'] for p in body['data']['products']] == ['Chelsea']
    assert body['pagination']['total'] == 1
    assert client.get('/api/categories/999/products').status_code == 404


def test_order_items_endpoint(client, make_user, make_product, auth_header):
    owner, stranger = make_user(), make_user()
    product = make_product(name='Desert boot', price='15.00', stock=5)
    response = client.post('/api/orders', headers=auth_header(owner), json={
        'items': [{'product_id': product.id, 'quantity': 2}], 'shipping_address': ADDRESS})
    order_id = response.get_json()['data']['id']

    items = client.get(f'/api/orders/{order_id}/items', headers=auth_header(owner)).get_json()['data']
    assert [(item['product_id'], item['quantity'], item['total_price']) for item in items] == [(product.id, 2, 30.0)]
    assert client.get(f'/api/orders/{order_id}/items', headers=auth_header(stranger)).status_code == 403
