"""GELF HTTP sender built on httpx.

Posts one JSON message per request to ``/gelf`` on the configured input.
"""

import logging

import httpx

from gelfmetrics.adapters.transport.gelf import ssl_context
from gelfmetrics.core.config import TransportConfig

logger = logging.getLogger(__name__)

GELF_HTTP_PATH = "/gelf"


class HttpSender:
    """Sends payloads to a Graylog GELF HTTP input.

    5xx responses and connection errors raise httpx.HTTPError so the
    transport retries. 4xx responses are logged and the payload dropped.

    A new httpx.Client is created after every close. Pass ``transport`` to
    route its requests somewhere other than the network.
    """

    def __init__(
        self,
        config: TransportConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        scheme = "https" if config.tls_enabled else "http"
        self.url = f"{scheme}://{config.host}:{config.port}{GELF_HTTP_PATH}"
        self._config = config
        self._transport = transport
        self._client: httpx.Client | None = None

    def _connect(self) -> httpx.Client:
        if self._client is None:
            config = self._config
            self._client = httpx.Client(
                timeout=httpx.Timeout(config.connect_timeout / 1000),
                verify=ssl_context(config),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    def send(self, payloads: list[bytes]) -> None:
        client = self._connect()
        while payloads:
            response = client.post(self.url, content=payloads[0])
            if response.is_server_error:
                response.raise_for_status()
            if response.is_client_error:
                logger.warning(
                    "GELF input at %s rejected message with HTTP %d",
                    self.url,
                    response.status_code,
                )
            del payloads[0]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
