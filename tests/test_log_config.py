import logging

from loguru import logger

from inventory_service.config import Settings
from inventory_service.log_config import configure_logging


def test_stdlib_records_reach_loguru():
    configure_logging(Settings(log_level="DEBUG", environment="test"))
    messages: list[str] = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    try:
        logging.getLogger("inventory.test").warning("forwarded %s", "record")
        logging.getLogger("uvicorn.access").warning("dropped")
    finally:
        logger.remove(sink_id)

    assert "forwarded record" in messages
    assert "dropped" not in messages
