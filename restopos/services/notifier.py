"""
Change notifier - best-effort broadcast of table and order changes.

Messages go to a Redis pub/sub channel that the realtime gateway relays to
POS screens, plus any in-process listeners. Publishing happens after the
database commit, on a daemon thread, and a failure is only logged: a lost
notification must never undo a committed order.
"""
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class ChangeNotifier:
    """Redis-backed change notifier with graceful degradation."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._channel: str = 'restopos:changes'
        self._listeners: List[Listener] = []

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('NOTIFY_ENABLED', True)
        self._channel = app.config.get('NOTIFY_CHANNEL', self._channel)
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[NOTIFY] Redis notifications are DISABLED via config")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
            )
            self.client.ping()
            logger.info(f"[NOTIFY] Redis connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[NOTIFY] Redis connection failed: {e}. Notifications limited to local listeners.")
            self._enabled = False
            self.client = None

    def subscribe(self, listener: Listener) -> None:
        """Register an in-process listener (called with every message dict)."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Collaborator interface used by the order core
    # ------------------------------------------------------------------

    def notify_table_changed(self, table: Dict[str, Any]) -> None:
        self._dispatch({'type': 'table_update', 'table': table})

    def notify_order_changed(self, event: Dict[str, Any]) -> None:
        message = dict(event)
        message.setdefault('type', 'order_update')
        self._dispatch(message)

    # ------------------------------------------------------------------

    def _dispatch(self, message: Dict[str, Any]) -> None:
        message['timestamp'] = datetime.now(timezone.utc).isoformat()

        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                logger.warning(f"[NOTIFY] Listener {listener!r} failed: {e}")

        if not self._enabled or not self.client:
            return

        try:
            payload = json.dumps(message, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"[NOTIFY] Could not serialize {message.get('type')} message: {e}")
            return

        threading.Thread(target=self._publish, args=(payload,), daemon=True).start()

    def _publish(self, payload: str) -> None:
        try:
            self.client.publish(self._channel, payload)
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[NOTIFY] Publish failed (dropped): {e}")


_notifier: Optional[ChangeNotifier] = None


def init_notifier(app: Flask) -> ChangeNotifier:
    """Initialize notifier singleton."""
    global _notifier
    _notifier = ChangeNotifier(app)
    app.extensions['notifier'] = _notifier
    return _notifier


def get_notifier() -> ChangeNotifier:
    """Get notifier instance (a disabled one when the app never initialized it)."""
    global _notifier
    if _notifier is None:
        _notifier = ChangeNotifier()
    return _notifier
