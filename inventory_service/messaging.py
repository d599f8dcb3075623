from __future__ import annotations

import datetime as dt
import json

import pika
from loguru import logger
from pika.exceptions import AMQPError

from .config import Settings, get_settings

LOW_STOCK_ROUTING_KEY = "stock.low"


def _connect(settings: Settings) -> pika.BlockingConnection:
    params = pika.URLParameters(settings.rabbitmq_url)
    params.heartbeat = 30
    params.blocked_connection_timeout = 30
    return pika.BlockingConnection(params)


def publish_event(routing_key: str, payload: dict, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    connection = _connect(settings)
    try:
        ch = connection.channel()
        ch.exchange_declare(exchange=settings.events_exchange, exchange_type="topic", durable=True)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        ch.basic_publish(
            exchange=settings.events_exchange,
            routing_key=routing_key,
            body=body,
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,
            ),
        )
    finally:
        connection.close()


def notify_low_stock(product: dict, settings: Settings | None = None) -> None:
    """Publish a stock.low event for a product that fell below its threshold.

    Runs after the stock change has been committed, so a broker outage is
    logged and otherwise ignored.
    """
    settings = settings or get_settings()
    if not settings.events_enabled:
        return

    payload = {
        "event": LOW_STOCK_ROUTING_KEY,
        "occurred_at": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "product": product,
    }
    try:
        publish_event(LOW_STOCK_ROUTING_KEY, payload, settings)
    except AMQPError as exc:
        logger.warning(
            "Could not publish {} for product {}: {!r}",
            LOW_STOCK_ROUTING_KEY,
            product.get("id"),
            exc,
        )
        return
    logger.info("Published {} for product {}", LOW_STOCK_ROUTING_KEY, product.get("id"))
