import logging
import sys

from loguru import logger

from .config import Settings


class InterceptHandler(logging.Handler):
    """Redirect standard 'logging' records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # uvicorn access lines are replaced by the request logging middleware
        if record.name == "uvicorn.access":
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def configure_logging(settings: Settings) -> None:
    logger.remove()

    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    diagnose_on = settings.environment != "production"

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=fmt,
        colorize=True,
        backtrace=diagnose_on,
        diagnose=diagnose_on,
    )

    # 'force=True' clears existing handlers; level=0 lets all records through
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict.keys()):
        stdlog = logging.getLogger(name)
        stdlog.handlers = []
        stdlog.propagate = True

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("pika").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)

    logger.info(
        "Logging configured (level={}, environment={})",
        settings.log_level,
        settings.environment,
    )
