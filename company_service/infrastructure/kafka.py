"""Kafka event publishing for company mutations.

Events are JSON envelopes (``type``, ``payload``, ``timestamp``) keyed by the
event type. The producer is started lazily on first publish so that an
unavailable broker never blocks application startup.
"""
import asyncio
from typing import Any, Dict, List, Optional

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from company_service.core.errors import PublishError
from company_service.core.logging import get_logger
from company_service.domain.events import EventEnvelope
from company_service.domain.ports import EventPublisher

logger = get_logger(__name__)


class KafkaEventPublisher(EventPublisher):
    """Publishes events to a single Kafka topic.

    Example:
        >>> publisher = KafkaEventPublisher(["localhost:9092"], "company-events")
        >>> await publisher.publish("CompanyCreated", {"id": "...", "name": "Acme"})
        >>> await publisher.close()
    """

    def __init__(
        self,
        bootstrap_servers: List[str],
        topic: str,
        client_id: str = "company-service",
        request_timeout_ms: int = 30000,
    ):
        """Initialize publisher.

        Args:
            bootstrap_servers: Broker addresses
            topic: Destination topic for every event
            client_id: Kafka client id
            request_timeout_ms: Producer request timeout
        """
        self.topic = topic
        self._producer_config = {
            "bootstrap_servers": bootstrap_servers,
            "client_id": client_id,
            "acks": "all",
            "enable_idempotence": True,
            "linger_ms": 10,
            "request_timeout_ms": request_timeout_ms,
        }
        self._producer: Optional[AIOKafkaProducer] = None
        self._producer_started = False
        self._start_lock = asyncio.Lock()

        logger.info(f"Kafka publisher configured: brokers={bootstrap_servers}, topic={topic}")

    async def _ensure_producer(self) -> AIOKafkaProducer:
        """Start the producer if it is not running yet."""
        async with self._start_lock:
            if not self._producer_started:
                if self._producer is None:
                    self._producer = AIOKafkaProducer(**self._producer_config)
                try:
                    await self._producer.start()
                except BaseException:
                    # A failed or cancelled start leaves the client unusable; build a new one next time
                    self._producer = None
                    raise
                self._producer_started = True
                logger.info("Kafka producer started successfully")
        return self._producer

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        envelope = EventEnvelope(type=event_type, payload=payload)
        value = envelope.model_dump_json().encode("utf-8")

        try:
            producer = await self._ensure_producer()
            await producer.send_and_wait(
                self.topic,
                value=value,
                key=event_type.encode("utf-8"),
            )
        except KafkaError as e:
            logger.error(
                f"Failed to publish event {event_type}: {e}",
                extra={"event_type": event_type},
            )
            raise PublishError(event_type, str(e)) from e

        logger.info(f"Event published: {event_type}", extra={"event_type": event_type})

    async def close(self) -> None:
        if self._producer is not None and self._producer_started:
            logger.info("Stopping Kafka producer...")
            await self._producer.stop()
        self._producer = None
        self._producer_started = False


class NoOpEventPublisher(EventPublisher):
    """Publisher used when Kafka is disabled. Logs and drops every event."""

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.debug(f"Kafka disabled, skipping event: {event_type}", extra={"event_type": event_type})
