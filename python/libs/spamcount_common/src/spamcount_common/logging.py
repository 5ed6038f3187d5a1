"""Logging configuration for spamcount components."""
import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from .config import ServiceIdentity

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class SpamCountJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with the service identity."""

    def __init__(self, *args: Any, service: ServiceIdentity | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service = service or ServiceIdentity()

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["service"] = self.service.name
        log_record["version"] = self.service.version
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if "message" not in log_record:
            log_record["message"] = record.getMessage()


def configure_logging(
    level: str = "INFO",
    log_format: str = "text",
    service: ServiceIdentity | None = None,
) -> None:
    """Configure root logging on stderr; stdout carries the report."""
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(
            SpamCountJsonFormatter(
                fmt="%(asctime)s %(level)s %(name)s %(message)s",
                rename_fields={"asctime": "@timestamp"},
                service=service,
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Reduce noise from libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
