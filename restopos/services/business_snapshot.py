"""
Business rule snapshot.

An order freezes the tax configuration in force when it was created so
that later VAT changes never alter its recalculations.
"""
import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal, InvalidOperation

from restopos.exceptions import InternalError
from restopos.utils.number_format import round_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessSnapshot:
    vat_rate: Decimal
    exchange_rate: Decimal
    restaurant_name: str = ''
    captured_at: str = ''

    @classmethod
    def from_settings(cls, settings: dict) -> 'BusinessSnapshot':
        try:
            vat_rate = Decimal(str(settings.get('vatRate', 0)))
            exchange_rate = Decimal(str(settings.get('exchangeRate', 0)))
        except (InvalidOperation, ValueError) as e:
            # Bad configuration is not something the caller can correct
            raise InternalError() from e
        return cls(
            vat_rate=vat_rate,
            exchange_rate=exchange_rate,
            restaurant_name=str(settings.get('restaurantName', '')),
            captured_at=datetime.now().isoformat(timespec='seconds'),
        )

    @classmethod
    def from_json(cls, raw: str) -> 'BusinessSnapshot':
        data = json.loads(raw)
        return cls(
            vat_rate=Decimal(str(data['vatRate'])),
            exchange_rate=Decimal(str(data.get('exchangeRate', 0))),
            restaurant_name=data.get('restaurantName', ''),
            captured_at=data.get('capturedAt', ''),
        )

    def to_json(self) -> str:
        data = asdict(self)
        return json.dumps({
            'vatRate': str(data['vat_rate']),
            'exchangeRate': str(data['exchange_rate']),
            'restaurantName': data['restaurant_name'],
            'capturedAt': data['captured_at'],
        })


def freeze(settings_provider) -> BusinessSnapshot:
    """Capture the provider's current business settings."""
    return BusinessSnapshot.from_settings(settings_provider.get_business_settings())


def snapshot_for(order, settings_provider) -> BusinessSnapshot:
    """
    The order's frozen snapshot.

    Legacy orders created before snapshots existed get one generated from
    current settings, and it is stored on the order so it stays fixed.
    """
    snapshot = order.snapshot
    if snapshot is None:
        snapshot = freeze(settings_provider)
        order.business_snapshot = snapshot.to_json()
        logger.info(f"[ORDERS] Generated missing business snapshot for order {order.order_number}")
    return snapshot


def compute_tax(subtotal: Decimal, snapshot: BusinessSnapshot) -> Decimal:
    """subtotal x vatRate / 100, rounded to cents."""
    return round_money(Decimal(subtotal) * snapshot.vat_rate / Decimal('100'))
