"""
Unit tests for the change notifier.
"""

from flask import Flask

from restopos.services.notifier import ChangeNotifier


def _app(**config):
    app = Flask(__name__)
    app.config.update(config)
    return app


class TestListeners:

    def test_listeners_receive_messages(self):
        notifier = ChangeNotifier()
        received = []
        notifier.subscribe(received.append)

        notifier.notify_table_changed({'id': 1, 'status': 'OCCUPIED'})
        notifier.notify_order_changed({'action': 'create', 'order': {'id': 5}})

        assert [m['type'] for m in received] == ['table_update', 'order_update']
        assert received[0]['table'] == {'id': 1, 'status': 'OCCUPIED'}
        assert all('timestamp' in m for m in received)

    def test_failing_listener_does_not_stop_others(self):
        notifier = ChangeNotifier()
        received = []

        def broken(message):
            raise RuntimeError('socket closed')

        notifier.subscribe(broken)
        notifier.subscribe(received.append)

        notifier.notify_table_changed({'id': 2})
        assert len(received) == 1

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        received = []
        notifier.subscribe(received.append)
        notifier.unsubscribe(received.append)

        notifier.notify_table_changed({'id': 3})
        assert received == []


class TestRedisConnection:

    def test_disabled_by_config(self):
        notifier = ChangeNotifier(_app(NOTIFY_ENABLED=False))

        assert notifier.client is None
        notifier.notify_table_changed({'id': 1})

    def test_unreachable_redis_degrades_to_local(self):
        notifier = ChangeNotifier(_app(NOTIFY_ENABLED=True, REDIS_URL='redis://127.0.0.1:1/0'))
        received = []
        notifier.subscribe(received.append)

        assert notifier.client is None
        notifier.notify_order_changed({'action': 'pay'})
        assert received[0]['action'] == 'pay'
