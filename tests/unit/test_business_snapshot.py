"""
Unit tests for business snapshots and tax computation.
"""

import json
import pytest
from decimal import Decimal

from restopos.models import Order, OrderStatus
from restopos.services.business_snapshot import BusinessSnapshot, freeze, snapshot_for, compute_tax
from restopos.services.settings_service import StaticSettingsProvider, save_business_settings, get_business_settings
from restopos.exceptions import InternalError


def test_freeze_captures_settings():
    snapshot = freeze(StaticSettingsProvider(vatRate=12.5, exchangeRate=4000, restaurantName='Bayon'))

    assert snapshot.vat_rate == Decimal('12.5')
    assert snapshot.exchange_rate == Decimal('4000')
    assert snapshot.restaurant_name == 'Bayon'
    assert snapshot.captured_at


def test_json_uses_camel_case_keys():
    snapshot = BusinessSnapshot(vat_rate=Decimal('10'), exchange_rate=Decimal('4100'), restaurant_name='X')
    data = json.loads(snapshot.to_json())

    assert data['vatRate'] == '10'
    assert data['exchangeRate'] == '4100'
    assert BusinessSnapshot.from_json(snapshot.to_json()) == snapshot


def test_bad_settings_are_internal_errors():
    with pytest.raises(InternalError):
        freeze(StaticSettingsProvider(vatRate='ten percent'))


@pytest.mark.parametrize('subtotal, vat, expected', [
    ('20.00', '10', '2.00'),
    ('10.00', '10', '1.00'),
    ('0.05', '10', '0.01'),   # 0.005 rounds half up
    ('33.33', '7.5', '2.50'),
    ('15.00', '0', '0.00'),
])
def test_compute_tax(subtotal, vat, expected):
    snapshot = BusinessSnapshot(vat_rate=Decimal(vat), exchange_rate=Decimal('4100'))
    assert compute_tax(Decimal(subtotal), snapshot) == Decimal(expected)


def test_snapshot_for_legacy_order_is_generated_once():
    order = Order(order_number='ORD-LEGACY', status=OrderStatus.PENDING, business_snapshot=None)

    first = snapshot_for(order, StaticSettingsProvider(vatRate=8))
    assert order.business_snapshot is not None
    assert first.vat_rate == Decimal('8')

    # Later settings changes do not affect the stored snapshot
    second = snapshot_for(order, StaticSettingsProvider(vatRate=20))
    assert second.vat_rate == Decimal('8')


def test_database_settings_override_defaults(session):
    assert get_business_settings(session)['vatRate'] == 10.0

    save_business_settings(session, {'vatRate': 15, 'restaurantName': 'Khmer Kitchen'})
    session.commit()

    settings = get_business_settings(session)
    assert settings['vatRate'] == 15
    assert settings['restaurantName'] == 'Khmer Kitchen'
    assert settings['exchangeRate'] == 4100.0
