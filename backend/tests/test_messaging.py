"""Test the RabbitMQ event bus against an in-memory fake connection."""
import json
import logging

import pytest
from flask import Flask
from pika.exceptions import AMQPChannelError, AMQPConnectionError, StreamLostError
from pika.spec import PERSISTENT_DELIVERY_MODE

from campus.services.messaging import (
    AUDIT_EXCHANGE, GATEWAY_EXCHANGE, SERVICE_EXCHANGE, EventBus, EventConsumer,
    connect_with_retry, declare_topology, routing_key
)
from campus.utils.errors import InternalError


class FakeChannel:

    def __init__(self, calls):
        self.calls = calls
        self.is_open = True
        self.published = []
        self.exchanges = {}
        self.queues = []
        self.bindings = []
        self.fail_publish = False
        self.drop_next_publish = False
        self.acks = []
        self.nacks = []

    def exchange_declare(self, exchange, exchange_type, durable, auto_delete):
        self.exchanges[exchange] = (exchange_type, durable)

    def queue_declare(self, queue, durable, exclusive, auto_delete):
        self.queues.append((queue, durable))

    def queue_bind(self, queue, exchange, routing_key):
        self.bindings.append((queue, exchange, routing_key))

    def basic_publish(self, exchange, routing_key, body, properties):
        if self.drop_next_publish:
            self.drop_next_publish = False
            raise StreamLostError('Transport indicated EOF')
        if self.fail_publish:
            raise AMQPChannelError('channel gone')
        self.published.append((exchange, routing_key, json.loads(body), properties))

    def basic_ack(self, delivery_tag):
        self.acks.append(delivery_tag)

    def basic_nack(self, delivery_tag, requeue):
        self.nacks.append((delivery_tag, requeue))

    def basic_qos(self, prefetch_count):
        self.calls.append(('qos', prefetch_count))

    def basic_consume(self, queue, on_message_callback, auto_ack, consumer_tag):
        self.calls.append(('consume', queue, auto_ack, consumer_tag))

    def start_consuming(self):
        self.calls.append('start_consuming')

    def close(self):
        self.calls.append('channel.close')
        self.is_open = False


class FakeConnection:

    def __init__(self, calls):
        self.calls = calls
        self.is_open = True
        self._channel = FakeChannel(calls)
        self.heartbeats = 0

    def channel(self):
        return self._channel

    def process_data_events(self, time_limit=None):
        self.heartbeats += 1

    def close(self):
        self.calls.append('connection.close')
        self.is_open = False


class Method:

    def __init__(self, delivery_tag, routing_key='audit.auth.login'):
        self.delivery_tag = delivery_tag
        self.routing_key = routing_key


@pytest.fixture
def calls():
    return []


@pytest.fixture
def connection(calls):
    return FakeConnection(calls)


@pytest.fixture
def bus(connection):
    app = Flask('bus-test')
    app.config.update(BROKER_ENABLED=True, SERVICE_NAME='attendance', SHUTDOWN_TIMEOUT_SECONDS=1)
    bus = EventBus(app, connection_factory=lambda: connection)
    yield bus
    bus.close()


def test_routing_key_escapes_dots():
    assert routing_key('audit', 'auth', 'login') == 'audit.auth.login'
    assert routing_key('service', 'attendance', 'qr.scanned') == 'service.attendance.qr_scanned'
    assert routing_key('request', '', 'GET') == 'request.unknown.get'


def test_topology(connection):
    channel = connection.channel()
    declare_topology(channel)
    declare_topology(channel)

    assert channel.exchanges == {
        'gateway_events': ('topic', True),
        'service_events': ('topic', True),
        'notifications': ('topic', True),
        'audit_logs': ('topic', True),
    }
    assert ('audit_queue', True) in channel.queues
    assert ('audit_queue', 'audit_logs', 'audit.#') in channel.bindings
    assert ('request_queue', 'gateway_events', 'request.#') in channel.bindings
    assert ('notification_queue', 'notifications', 'notification.#') in channel.bindings


def test_start_declares_topology(bus, connection):
    assert bus.enabled is True
    assert AUDIT_EXCHANGE in connection.channel().exchanges


def test_publish_properties(bus, connection):
    bus.publish(AUDIT_EXCHANGE, 'audit.auth.login', {'user_id': 'u1'})

    exchange, key, body, properties = connection.channel().published[0]
    assert exchange == AUDIT_EXCHANGE
    assert key == 'audit.auth.login'
    assert body == {'user_id': 'u1'}
    assert properties.delivery_mode == PERSISTENT_DELIVERY_MODE
    assert properties.content_type == 'application/json'
    assert isinstance(properties.timestamp, int)


def test_publish_failure_raises(bus, connection):
    connection.channel().fail_publish = True
    with pytest.raises(InternalError):
        bus.publish(SERVICE_EXCHANGE, 'service.attendance.recorded', {})


def test_async_failure_is_logged(bus, connection, caplog):
    connection.channel().fail_publish = True
    with caplog.at_level(logging.ERROR, logger='campus.services.messaging'):
        future = bus.publish_async(GATEWAY_EXCHANGE, 'request.auth.post', {})
        with pytest.raises(AMQPChannelError):
            future.result(timeout=5)
        bus.close()
    assert 'request.auth.post' in caplog.text


def test_helpers_pick_exchange_and_key(bus, connection):
    bus.publish_request_log({'service': 'attendance', 'method': 'POST'}, wait=True)
    bus.publish_audit_log({'resource': 'auth', 'action': 'login'}, wait=True)
    bus.publish_service_event('recorded', {'attendance_id': 'a1'}, wait=True)

    published = [(exchange, key) for exchange, key, _, _ in connection.channel().published]
    assert published == [
        (GATEWAY_EXCHANGE, 'request.attendance.post'),
        (AUDIT_EXCHANGE, 'audit.auth.login'),
        (SERVICE_EXCHANGE, 'service.attendance.recorded'),
    ]
    body = connection.channel().published[2][2]
    assert body['event'] == 'recorded'
    assert body['payload'] == {'attendance_id': 'a1'}


def test_retry_backoff():
    sleeps = []

    def refuse():
        raise AMQPConnectionError('refused')

    with pytest.raises(InternalError) as exc:
        connect_with_retry(refuse, attempts=5, backoff=2.0, sleep=sleeps.append)
    assert sleeps == [2.0, 4.0, 6.0, 8.0]
    assert exc.value.message == 'failed to connect to RabbitMQ'


def test_retry_recovers(connection):
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise AMQPConnectionError('not yet')
        return connection

    assert connect_with_retry(flaky, sleep=lambda s: None) is connection
    assert len(attempts) == 3


def test_consumer_acks_and_requeues(connection, calls):
    handled = []

    def handler(message):
        if message.get('poison'):
            raise ValueError('cannot handle')
        handled.append(message)

    consumer = EventConsumer(lambda: connection, 'audit_queue', 'auditor', handler)
    consumer.run()
    channel = connection.channel()
    assert ('qos', 1) in calls
    assert ('consume', 'audit_queue', False, 'auditor') in calls

    consumer.on_message(channel, Method(1), None, b'{"action": "login"}')
    consumer.on_message(channel, Method(2), None, b'{"poison": true}')
    consumer.on_message(channel, Method(3), None, b'not json')

    assert handled == [{'action': 'login'}]
    assert channel.acks == [1]
    assert channel.nacks == [(2, True), (3, True)]


def test_close_order(bus, calls):
    bus.publish_service_event('recorded', {}, wait=True)
    bus.close()

    assert calls[-2:] == ['channel.close', 'connection.close']
    assert bus.enabled is False
    assert bus.publish_async(SERVICE_EXCHANGE, 'service.x.y', {}) is None


def test_disabled_bus_is_noop():
    app = Flask('bus-test')
    app.config['BROKER_ENABLED'] = False

    def explode():
        raise AssertionError('must not connect')

    bus = EventBus(app, connection_factory=explode)
    assert bus.publish(AUDIT_EXCHANGE, 'audit.a.b', {}) is None
    assert bus.publish_service_event('recorded', {}) is None


def test_publish_services_heartbeats(bus, connection):
    bus.publish(AUDIT_EXCHANGE, 'audit.auth.login', {})
    bus.publish(AUDIT_EXCHANGE, 'audit.auth.refresh', {})
    assert connection.heartbeats == 2


def test_dropped_connection_is_replaced_and_event_republished(calls):
    connections = []

    def factory():
        connection = FakeConnection(calls)
        connections.append(connection)
        return connection

    app = Flask('bus-test')
    app.config.update(BROKER_ENABLED=True, SHUTDOWN_TIMEOUT_SECONDS=1)
    bus = EventBus(app, connection_factory=factory)
    # The broker closed the idle socket; the next write notices.
    connections[0].channel().drop_next_publish = True

    bus.publish(SERVICE_EXCHANGE, 'service.attendance.recorded', {'attendance_id': 'a1'})

    stale, fresh = connections
    assert stale.is_open is False
    assert stale.channel().published == []
    assert [key for _, key, _, _ in fresh.channel().published] == ['service.attendance.recorded']
    assert SERVICE_EXCHANGE in fresh.channel().exchanges
    bus.close()


def test_republish_failure_still_raises(bus, connection):
    connection.channel().fail_publish = True
    with pytest.raises(InternalError):
        bus.publish(SERVICE_EXCHANGE, 'service.attendance.recorded', {})
    assert 'connection.close' in connection.calls
