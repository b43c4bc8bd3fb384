import itertools
from decimal import Decimal

import pytest

from storefront.config import Settings
from storefront.database import make_engine, make_session_factory, create_tables
from storefront.database.models import Inventory, Order, OrderItem
from storefront.services import accounts, catalog
from storefront.webapp import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key='test-secret-key',
        environment='testing',
    )


@pytest.fixture
def engine(settings):
    engine = make_engine(settings.database_url)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def app(settings, engine):
    app = create_app(settings)
    app.config['TESTING'] = True
    yield app
    app.extensions['storefront']['session'].remove()
    app.extensions['storefront']['engine'].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role='customer', password='secret123'):
        n = next(counter)
        return accounts.register(db, username=f'{role}{n}', email=f'{role}{n}@example.com',
                                 password=password, first_name='Test', last_name=f'User{n}', role=role)
    return _make


@pytest.fixture
def make_product(db):
    counter = itertools.count(1)

    def _make(name=None, price='10.00', stock=0, **kwargs):
        n = next(counter)
        return catalog.create_product(db, name=name or f'Product {n}', price=Decimal(price),
                                      initial_stock=stock, **kwargs)
    return _make


@pytest.fixture
def auth_header(settings):
    def _header(user):
        return {'Authorization': f'Bearer {accounts.issue_token(settings, user)}'}
    return _header


@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        db.expire_all()
        return db.query(Inventory).filter(Inventory.product_id == product_id).one().quantity
    return _stock


@pytest.fixture
def table_counts(db):
    def _counts():
        db.expire_all()
        return db.query(Order).count(), db.query(OrderItem).count()
    return _counts

