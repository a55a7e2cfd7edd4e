"""Python logging handler adapter for GELF transports.

This adapter bridges Python's standard library logging module to a
GelfTransportPort, so application logs can travel to the same GELF input
as the reported metrics.
"""

import logging
import traceback

from gelfmetrics.core.config import DEFAULT_SOURCE
from gelfmetrics.core.models import GelfMessage, GelfMessageLevel
from gelfmetrics.core.ports import GelfTransportPort

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["logger", "funcName", "lineno", "pathname"]

# Records logged by the transport are never sent through it
_TRANSPORT_LOGGER = "gelfmetrics.adapters.transport"


def gelf_level(levelno: int) -> GelfMessageLevel:
    """Map a Python logging level to the closest syslog severity."""
    if levelno >= logging.CRITICAL:
        return GelfMessageLevel.CRITICAL
    if levelno >= logging.ERROR:
        return GelfMessageLevel.ERROR
    if levelno >= logging.WARNING:
        return GelfMessageLevel.WARNING
    if levelno >= logging.INFO:
        return GelfMessageLevel.INFO
    return GelfMessageLevel.DEBUG


class GelfLogHandler(logging.Handler):
    """Logging handler that sends log records through a GELF transport.

    Sends are fire-and-forget; records dropped by a full transport queue
    are lost silently.

    Example:
        ```python
        from gelfmetrics import GelfLogHandler, GelfTransport, TransportConfig

        transport = GelfTransport(TransportConfig(host="graylog.local"))
        logging.getLogger().addHandler(GelfLogHandler(transport, source="web-01"))
        ```
    """

    def __init__(
        self,
        transport: GelfTransportPort,
        source: str = DEFAULT_SOURCE,
        include_attrs: list[str] | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with a transport.

        Args:
            transport: Transport implementing GelfTransportPort.
            source: Host name written to every message.
            include_attrs: List of LogRecord attributes to include. Defaults to
                ["logger", "funcName", "lineno", "pathname"].
            level: Minimum level handled.
        """
        super().__init__(level)
        self._transport = transport
        self._source = source
        self._include_attrs = include_attrs or _DEFAULT_INCLUDE_ATTRS

    def emit(self, record: logging.LogRecord) -> None:
        """Send a log record to the transport.

        Args:
            record: The log record to emit.
        """
        if record.name.startswith(_TRANSPORT_LOGGER):
            return
        try:
            message = self.to_message(record)
        except Exception:
            self.handleError(record)
            return
        self._transport.try_send(message)

    def to_message(self, record: logging.LogRecord) -> GelfMessage:
        """Convert a log record to a GelfMessage."""
        # Map of attribute names to their values from LogRecord
        attr_mapping: dict[str, str | int | float | bool] = {
            "logger": record.name,
            "module": record.module,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
            "pathname": record.pathname,
            "thread": record.threadName or "",
        }

        # Build fields based on include_attrs configuration
        fields: dict[str, str | int | float | bool] = {
            key: attr_mapping[key] for key in self._include_attrs if key in attr_mapping
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                fields[key] = value

        # Extract exception info if present
        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                fields["exc_type"] = exc_type.__name__
            if exc_value is not None:
                fields["exc_message"] = str(exc_value)
            if exc_tb is not None:
                fields["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

        return GelfMessage(
            message=record.getMessage(),
            host=self._source,
            level=gelf_level(record.levelno),
            timestamp=record.created,
            fields=fields,
        )
