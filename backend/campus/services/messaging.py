# backend/campus/services/messaging.py
"""RabbitMQ event bus: topology, publishing and consumers."""
import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import pika
from pika.exceptions import AMQPError
from pika.spec import PERSISTENT_DELIVERY_MODE

from campus.utils.errors import InternalError

logger = logging.getLogger(__name__)

GATEWAY_EXCHANGE = 'gateway_events'
SERVICE_EXCHANGE = 'service_events'
NOTIFICATION_EXCHANGE = 'notifications'
AUDIT_EXCHANGE = 'audit_logs'

EXCHANGES = [
    (GATEWAY_EXCHANGE, 'topic'),
    (SERVICE_EXCHANGE, 'topic'),
    (NOTIFICATION_EXCHANGE, 'topic'),
    # Wildcard bindings only route on topic exchanges.
    (AUDIT_EXCHANGE, 'topic'),
]

QUEUES = ['audit_queue', 'request_queue', 'notification_queue']

BINDINGS = [
    ('audit_queue', 'audit.#', AUDIT_EXCHANGE),
    ('request_queue', 'request.#', GATEWAY_EXCHANGE),
    ('notification_queue', 'notification.#', NOTIFICATION_EXCHANGE),
]

EXCHANGE_FOR_KIND = {
    'request': GATEWAY_EXCHANGE,
    'audit': AUDIT_EXCHANGE,
    'service': SERVICE_EXCHANGE,
    'notification': NOTIFICATION_EXCHANGE,
}


def routing_key(kind: str, service: str, detail: str) -> str:
    """Build a `<kind>.<service>.<detail>` routing key."""
    parts = [kind, service, detail]
    return '.'.join(str(p).strip().lower().replace('.', '_') or 'unknown' for p in parts)


def declare_topology(channel) -> None:
    """Declare exchanges, durable queues and bindings; safe to repeat."""
    for name, kind in EXCHANGES:
        channel.exchange_declare(exchange=name, exchange_type=kind, durable=True, auto_delete=False)
        logger.info("Exchange '%s' declared", name)

    for name in QUEUES:
        channel.queue_declare(queue=name, durable=True, exclusive=False, auto_delete=False)
        logger.info("Queue '%s' declared", name)

    for queue, key, exchange in BINDINGS:
        channel.queue_bind(queue=queue, exchange=exchange, routing_key=key)
        logger.info("Queue '%s' bound to exchange '%s' with key '%s'", queue, exchange, key)


def connect_with_retry(connection_factory: Callable, attempts: int = 5, backoff: float = 2.0,
                       sleep: Callable = time.sleep):
    """Open a broker connection, waiting `backoff * attempt` seconds between tries."""
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            return connection_factory()
        except AMQPError as e:
            last_error = e
            logger.warning("RabbitMQ connection attempt %d/%d failed: %s", attempt, attempts, e)
            if attempt < attempts:
                sleep(backoff * attempt)
    raise InternalError("failed to connect to RabbitMQ", last_error)


class EventBus:
    """Flask extension owning the publisher connection.

    Every publish runs on a single worker thread that owns the channel, so
    messages from this process keep their order per routing key.
    """

    def __init__(self, app=None, connection_factory: Callable = None):
        self._custom_factory = connection_factory
        self.connection_factory = connection_factory
        self.enabled = False
        self.connection = None
        self.channel = None
        self.service_name = 'campus'
        self.shutdown_timeout = 5.0
        self._executor: Optional[ThreadPoolExecutor] = None
        self._consumers: List['EventConsumer'] = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions['event_bus'] = self
        self.enabled = app.config.get('BROKER_ENABLED', False)
        self.service_name = app.config.get('SERVICE_NAME', 'campus')
        self.shutdown_timeout = app.config.get('SHUTDOWN_TIMEOUT_SECONDS', 5.0)
        self.retry_attempts = app.config.get('RABBITMQ_CONNECT_ATTEMPTS', 5)
        self.retry_backoff = app.config.get('RABBITMQ_CONNECT_BACKOFF_SECONDS', 2.0)
        self.connection_factory = self._custom_factory
        if self.connection_factory is None:
            url = app.config.get('RABBITMQ_URL')
            self.connection_factory = lambda: pika.BlockingConnection(pika.URLParameters(url))

        if self.enabled:
            self.start()

    def start(self) -> None:
        """Connect with bounded retry and declare the topology."""
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='event-publisher')
        self._executor.submit(self._connect).result()
        self.enabled = True

    def _connect(self) -> None:
        self._close_connection()
        self.connection = connect_with_retry(
            self.connection_factory, self.retry_attempts, self.retry_backoff
        )
        self.channel = self.connection.channel()
        declare_topology(self.channel)

    def _close_connection(self) -> None:
        """Close channel then connection; a dead socket is only logged."""
        try:
            if self.channel is not None and self.channel.is_open:
                self.channel.close()
            if self.connection is not None and self.connection.is_open:
                self.connection.close()
        except AMQPError as e:
            logger.warning("Error closing stale RabbitMQ connection: %s", e)
        self.channel = None
        self.connection = None

    def _ensure_channel(self) -> None:
        if self.channel is None or not self.channel.is_open:
            logger.info("Publisher channel closed, reconnecting")
            self._connect()

    def _basic_publish(self, exchange: str, key: str, body: bytes, headers: Dict = None) -> None:
        properties = pika.BasicProperties(
            content_type='application/json',
            delivery_mode=PERSISTENT_DELIVERY_MODE,
            timestamp=int(time.time()),
            headers=headers,
        )
        try:
            self._ensure_channel()
            # Services heartbeats that piled up while the publisher was idle.
            self.connection.process_data_events(time_limit=0)
            self.channel.basic_publish(exchange=exchange, routing_key=key, body=body,
                                       properties=properties)
        except AMQPError as e:
            # The broker may have dropped an idle connection; retry once on a fresh one.
            logger.warning("Publishing %s failed (%s), reconnecting", key, e)
            self._connect()
            self.channel.basic_publish(exchange=exchange, routing_key=key, body=body,
                                       properties=properties)

    def _submit(self, exchange: str, key: str, payload, headers: Dict = None) -> Future:
        body = json.dumps(payload, default=str).encode()
        return self._executor.submit(self._basic_publish, exchange, key, body, headers)

    def publish(self, exchange: str, key: str, payload, headers: Dict = None) -> None:
        """Publish and wait for the broker hand-off; failures raise InternalError."""
        if not self.enabled:
            logger.debug("Broker disabled, dropping %s", key)
            return
        try:
            self._submit(exchange, key, payload, headers).result()
        except (AMQPError, OSError) as e:
            raise InternalError("failed to publish event", e)
        logger.debug("Published %s to %s", key, exchange)

    def publish_async(self, exchange: str, key: str, payload, headers: Dict = None) -> Optional[Future]:
        """Hand the event to the publisher thread and return immediately."""
        if not self.enabled:
            logger.debug("Broker disabled, dropping %s", key)
            return None
        future = self._submit(exchange, key, payload, headers)
        future.add_done_callback(lambda f: self._log_failure(f, key))
        return future

    @staticmethod
    def _log_failure(future: Future, key: str) -> None:
        error = future.exception()
        if error is not None:
            logger.error("Failed to publish event %s: %s", key, error)

    def publish_request_log(self, entry: Dict, wait: bool = False):
        key = routing_key('request', entry.get('service', 'unknown'), entry.get('method', 'unknown'))
        if wait:
            return self.publish(GATEWAY_EXCHANGE, key, entry)
        return self.publish_async(GATEWAY_EXCHANGE, key, entry)

    def publish_audit_log(self, entry: Dict, wait: bool = False):
        key = routing_key('audit', entry.get('resource', 'unknown'), entry.get('action', 'unknown'))
        if wait:
            return self.publish(AUDIT_EXCHANGE, key, entry)
        return self.publish_async(AUDIT_EXCHANGE, key, entry)

    def publish_service_event(self, detail: str, payload: Dict, service: str = None,
                              wait: bool = False):
        service = service or self.service_name
        key = routing_key('service', service, detail)
        body = {
            'event': detail,
            'service': service,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'payload': payload,
        }
        headers = {'event_type': 'service', 'service': service}
        if wait:
            return self.publish(SERVICE_EXCHANGE, key, body, headers)
        return self.publish_async(SERVICE_EXCHANGE, key, body, headers)

    def start_consumer(self, queue: str, consumer_tag: str,
                       handler: Callable[[Dict], None], block: bool = True) -> 'EventConsumer':
        """Start a consumer on its own connection."""
        consumer = EventConsumer(
            self.connection_factory, queue, consumer_tag, handler,
            attempts=self.retry_attempts, backoff=self.retry_backoff
        )
        self._consumers.append(consumer)
        if block:
            consumer.run()
        else:
            consumer.start()
        return consumer

    def close(self) -> None:
        """Drain pending publishes, then close channel before connection."""
        for consumer in self._consumers:
            consumer.stop()
        if self._executor is not None:
            drain = self._executor.submit(lambda: None)
            try:
                drain.result(timeout=self.shutdown_timeout)
            except Exception as e:
                logger.warning("Publisher did not drain within %ss: %s", self.shutdown_timeout, e)
            self._executor.shutdown(wait=False)
            self._executor = None
        self._close_connection()
        self.enabled = False


class EventConsumer(threading.Thread):
    """Long-lived consumer with manual ack and requeue on handler error."""

    def __init__(self, connection_factory: Callable, queue: str, consumer_tag: str,
                 handler: Callable[[Dict], None], attempts: int = 5, backoff: float = 2.0):
        super().__init__(name=f'consumer-{consumer_tag}', daemon=True)
        self.connection_factory = connection_factory
        self.queue = queue
        self.consumer_tag = consumer_tag
        self.handler = handler
        self.attempts = attempts
        self.backoff = backoff
        self.connection = None
        self.channel = None

    def on_message(self, channel, method, properties, body: bytes) -> None:
        try:
            message = json.loads(body)
            self.handler(message)
        except Exception as e:
            logger.error("Error processing message %s: %s", method.routing_key, e)
            channel.basic_nack(delivery_tag=method.delivery_tag, requeue=True)
        else:
            channel.basic_ack(delivery_tag=method.delivery_tag)

    def run(self) -> None:
        self.connection = connect_with_retry(self.connection_factory, self.attempts, self.backoff)
        self.channel = self.connection.channel()
        declare_topology(self.channel)
        self.channel.basic_qos(prefetch_count=1)
        self.channel.basic_consume(
            queue=self.queue,
            on_message_callback=self.on_message,
            auto_ack=False,
            consumer_tag=self.consumer_tag,
        )
        logger.info("Started consumer '%s' on queue '%s'", self.consumer_tag, self.queue)
        try:
            self.channel.start_consuming()
        finally:
            if self.connection.is_open:
                self.connection.close()

    def stop(self) -> None:
        if self.connection is not None and self.connection.is_open:
            self.connection.add_callback_threadsafe(self.channel.stop_consuming)
