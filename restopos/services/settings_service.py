"""
Business settings provider (read-only).

Settings CRUD lives outside this service; here we only merge the stored
'business' document over defaults taken from the Flask config.
"""
import json
import logging

from flask import current_app, has_app_context

from restopos.models import BusinessSetting

logger = logging.getLogger(__name__)

BUSINESS_CATEGORY = 'business'


def default_business_settings() -> dict:
    """Defaults used when no settings row exists (or it lacks a key)."""
    if has_app_context():
        config = current_app.config
        return {
            'restaurantName': config.get('RESTAURANT_NAME', 'Restaurant POS'),
            'vatRate': config.get('DEFAULT_VAT_RATE', 10.0),
            'exchangeRate': config.get('DEFAULT_EXCHANGE_RATE', 4100.0),
        }
    return {
        'restaurantName': 'Restaurant POS',
        'vatRate': 10.0,
        'exchangeRate': 4100.0,
    }


def get_business_settings(session) -> dict:
    """Current business settings: stored values over defaults."""
    settings = default_business_settings()

    row = session.query(BusinessSetting).filter_by(category=BUSINESS_CATEGORY).first()
    if row:
        try:
            settings.update(row.values)
        except (TypeError, ValueError) as e:
            logger.error(f"[SETTINGS] Stored business settings are not valid JSON, using defaults: {e}")

    return settings


class DatabaseSettingsProvider:
    """Adapts ``get_business_settings`` to the provider interface used by the order core."""

    def __init__(self, session):
        self.session = session

    def get_business_settings(self) -> dict:
        return get_business_settings(self.session)


class StaticSettingsProvider:
    """Fixed settings, for scripts and tests that run without a settings row."""

    def __init__(self, **settings):
        self._settings = dict(default_business_settings(), **settings)

    def get_business_settings(self) -> dict:
        return dict(self._settings)


def save_business_settings(session, values: dict) -> BusinessSetting:
    """Store the 'business' document (used by seed scripts and tests; caller commits)."""
    row = session.query(BusinessSetting).filter_by(category=BUSINESS_CATEGORY).first()
    if not row:
        row = BusinessSetting(category=BUSINESS_CATEGORY)
        session.add(row)
    row.data = json.dumps(values, default=str)
    return row
