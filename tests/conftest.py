import pytest
from decimal import Decimal

from restopos import create_app
from restopos.database import get_session, create_all, drop_all
from restopos.models import Product, Stock, Table, TableStatus
from restopos.services.settings_service import StaticSettingsProvider


class RecordingNotifier:
    """Collects change notifications instead of publishing them."""

    def __init__(self):
        self.tables = []
        self.orders = []

    def notify_table_changed(self, table):
        self.tables.append(table)

    def notify_order_changed(self, event):
        self.orders.append(event)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema and database session for each test."""
    with app.app_context():
        create_all()
        session = get_session()
        yield session
        session.rollback()
        session.remove()
        drop_all()


@pytest.fixture(scope='function')
def client(app, session):
    """Test client logged in as user 1."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['user_id'] = 1
    return client


@pytest.fixture(scope='function')
def anonymous_client(app, session):
    return app.test_client()


@pytest.fixture(scope='function')
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope='function')
def settings():
    """Business settings with 10% VAT."""
    return StaticSettingsProvider(vatRate=10, exchangeRate=4100, restaurantName='Test Bistro')


@pytest.fixture(scope='function')
def product(session):
    """Stock-tracked product: $5.00, 20 in stock."""
    product = Product(name='Fried Rice', price=Decimal('5.00'), is_active=True, needs_stock_tracking=True)
    session.add(product)
    session.flush()

    stock = Stock(product_id=product.id, quantity=20, min_stock=5)
    session.add(stock)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product2(session):
    """Second stock-tracked product: $3.50, 10 in stock."""
    product = Product(name='Iced Coffee', price=Decimal('3.50'), is_active=True, needs_stock_tracking=True)
    session.add(product)
    session.flush()

    stock = Stock(product_id=product.id, quantity=10, min_stock=2)
    session.add(stock)
    session.commit()
    return product


@pytest.fixture(scope='function')
def untracked_product(session):
    """Product without stock tracking (unlimited availability)."""
    product = Product(name='Tap Water', price=Decimal('1.00'), is_active=True, needs_stock_tracking=False)
    session.add(product)
    session.commit()
    return product


def _make_table(session, number, status=TableStatus.AVAILABLE):
    table = Table(number=number, capacity=4, status=status, is_active=True)
    session.add(table)
    session.commit()
    return table


@pytest.fixture(scope='function')
def table1(session):
    return _make_table(session, 1)


@pytest.fixture(scope='function')
def table2(session):
    return _make_table(session, 2)


@pytest.fixture(scope='function')
def reserved_table(session):
    return _make_table(session, 7, TableStatus.RESERVED)


@pytest.fixture(scope='function')
def maintenance_table(session):
    return _make_table(session, 9, TableStatus.MAINTENANCE)
