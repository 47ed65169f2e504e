"""
Broker Publisher
RabbitMQ publishing over one long-lived kombu connection and channel
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog
from kombu import Connection, Exchange, Producer
from kombu.exceptions import KombuError

from app.models.messages import Destination, DestinationKind
from app.utils.config import BrokerConfig, get_broker_config
from app.utils.exceptions import PublishFailure

logger = structlog.get_logger(__name__)


class Publisher(ABC):
    """
    Delivers serialized messages to a broker destination

    Implementations are fire-and-forget: ``publish`` returns once the
    payload has been handed to the transport and never waits for a
    delivery acknowledgment. Failures detected while handing off are
    raised as PublishFailure; anything lost afterwards is not reported.
    ``publish`` is a blocking call and runs on the request's event loop.
    """

    @abstractmethod
    def connect(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def publish(self, destination: Destination, payload: bytes) -> None:
        ...


class KombuPublisher(Publisher):
    """Publisher sharing one channel across every request"""

    def __init__(self, config: Optional[BrokerConfig] = None):
        self.config = config or get_broker_config()
        self.exchange = Exchange(self.config.exchange, type="topic", durable=True)
        self._connection: Optional[Connection] = None
        self._channel = None
        self._producer: Optional[Producer] = None

    def connect(self) -> None:
        """Open the connection and channel and declare the topic exchange"""
        try:
            self._connection = Connection(
                self.config.get_broker_url(),
                connect_timeout=self.config.connect_timeout,
            )
            self._connection.connect()
            self._channel = self._connection.channel()
            self.exchange = self.exchange(self._channel)
            self.exchange.declare()
            self._producer = Producer(self._channel)
            logger.info(
                "Connected to RabbitMQ",
                host=self.config.host,
                port=self.config.port,
                exchange=self.config.exchange,
            )
        except Exception as e:
            logger.error("Failed to connect to RabbitMQ", host=self.config.host, error=str(e))
            self.close()
            raise

    def close(self) -> None:
        if self._channel is not None:
            try:
                self._channel.close()
            except Exception as e:
                logger.warning("Error closing RabbitMQ channel", error=str(e))
        if self._connection is not None:
            self._connection.release()
            logger.info("RabbitMQ connection closed")
        self._connection = None
        self._channel = None
        self._producer = None

    def is_connected(self) -> bool:
        return self._connection is not None and bool(self._connection.connected)

    def publish(self, destination: Destination, payload: bytes) -> None:
        if self._producer is None:
            raise PublishFailure("publisher is not connected")

        if destination.kind == DestinationKind.QUEUE:
            # Default exchange routes by queue name
            exchange, routing_key = "", destination.name
        else:
            exchange, routing_key = self.exchange, destination.name

        errors = (OSError, KombuError) + tuple(self._connection.connection_errors) + tuple(
            self._connection.channel_errors
        )
        try:
            self._producer.publish(
                payload,
                exchange=exchange,
                routing_key=routing_key,
                content_type="application/json",
                content_encoding="utf-8",
                retry=False,
            )
        except errors as e:
            logger.error(
                "Publish to RabbitMQ failed",
                destination_kind=destination.kind.value,
                destination=destination.name,
                error=str(e),
            )
            raise PublishFailure(str(e)) from e
