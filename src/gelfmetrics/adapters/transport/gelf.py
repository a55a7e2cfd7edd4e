"""Queueing GELF transport over UDP, TCP or TLS.

``GelfTransport.try_send`` only puts the message on a bounded queue. A
daemon worker thread encodes queued messages and writes them to the
network, reconnecting after failures. Network errors are logged here and
never reach the caller.
"""

import logging
import queue
import socket
import ssl
import threading
from typing import Protocol

import httpx

from gelfmetrics.core.config import TransportConfig
from gelfmetrics.core.encoding.gelf import DEFAULT_CHUNK_SIZE, MessageTooLarge, chunk, encode
from gelfmetrics.core.models import GelfMessage, GelfTransports

logger = logging.getLogger(__name__)

# Network failures, logged without a traceback. Anything else a sender
# raises is logged with one and retried the same way.
_SEND_ERRORS = (OSError, httpx.HTTPError)


class Sender(Protocol):
    """Writes encoded GELF payloads to one destination."""

    def send(self, payloads: list[bytes]) -> None:
        """Write and remove payloads from the front of ``payloads``.

        On failure ``payloads`` holds what was not written, so a retry does
        not repeat messages already sent.
        """
        ...

    def close(self) -> None:
        """Release the connection. The next send reconnects."""
        ...


def ssl_context(config: TransportConfig) -> ssl.SSLContext:
    """Build the client TLS context described by ``config``."""
    if config.tls_cert_verification_enabled:
        cafile = config.tls_trust_cert_chain_file
        return ssl.create_default_context(cafile=str(cafile) if cafile else None)
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class UdpSender:
    """Sends each payload as one datagram, chunking large payloads."""

    def __init__(self, config: TransportConfig, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._config = config
        self._chunk_size = chunk_size
        self._sock: socket.socket | None = None
        self._address: tuple[str, int] | None = None

    def _connect(self) -> socket.socket:
        if self._sock is None:
            family, _, _, _, address = socket.getaddrinfo(
                self._config.host, self._config.port, type=socket.SOCK_DGRAM
            )[0]
            sock = socket.socket(family, socket.SOCK_DGRAM)
            if self._config.send_buffer_size > 0:
                sock.setsockopt(
                    socket.SOL_SOCKET, socket.SO_SNDBUF, self._config.send_buffer_size
                )
            self._sock, self._address = sock, address
        return self._sock

    def send(self, payloads: list[bytes]) -> None:
        sock = self._connect()
        while payloads:
            try:
                datagrams = chunk(payloads[0], self._chunk_size)
            except MessageTooLarge as exc:
                logger.warning("Dropping GELF message: %s", exc)
            else:
                for datagram in datagrams:
                    sock.sendto(datagram, self._address)
            del payloads[0]

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None


class TcpSender:
    """Writes NUL-terminated payloads over a persistent TCP or TLS stream."""

    def __init__(self, config: TransportConfig) -> None:
        self._config = config
        self._sock: socket.socket | None = None

    def _connect(self) -> socket.socket:
        if self._sock is not None:
            return self._sock
        config = self._config
        timeout = config.connect_timeout / 1000
        sock = socket.create_connection(config.address, timeout=timeout)
        try:
            if config.tcp_no_delay:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            if config.tcp_keep_alive:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            if config.send_buffer_size > 0:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, config.send_buffer_size)
            if config.tls_enabled:
                sock = ssl_context(config).wrap_socket(sock, server_hostname=config.host)
        except OSError:
            sock.close()
            raise
        logger.info("Connected to GELF input at %s:%d", config.host, config.port)
        self._sock = sock
        return sock

    def send(self, payloads: list[bytes]) -> None:
        # One write per batch. A failure part way through resends the whole
        # batch, since the stream gives no way to tell which frames arrived.
        sock = self._connect()
        sock.sendall(b"".join(payload + b"\0" for payload in payloads))
        payloads.clear()

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None


def create_sender(config: TransportConfig) -> Sender:
    """Return the sender matching ``config.transport``."""
    if config.transport is GelfTransports.TCP:
        return TcpSender(config)
    if config.transport is GelfTransports.HTTP:
        from gelfmetrics.adapters.transport.http import HttpSender

        return HttpSender(config)
    return UdpSender(config)


class GelfTransport:
    """Non-blocking, best-effort GELF transport.

    Implements GelfTransportPort. Messages that do not fit into the queue
    are dropped; delivery is never confirmed to the caller.

    Example:
        ```python
        transport = GelfTransport(TransportConfig(host="graylog.local"))
        transport.try_send(GelfMessage(message="hello", host="web-01"))
        transport.stop()
        ```
    """

    def __init__(self, config: TransportConfig, sender: Sender | None = None) -> None:
        """Start the worker thread.

        Args:
            config: Network and queue settings.
            sender: Writer to use instead of the one matching
                ``config.transport``.
        """
        self._config = config
        self._sender = sender or create_sender(config)
        self._queue: queue.Queue[GelfMessage] = queue.Queue(maxsize=config.queue_size)
        self._stop_event = threading.Event()
        self._failing = False
        self._worker = threading.Thread(
            target=self._run, name=f"gelf-{config.transport}-transport", daemon=True
        )
        self._worker.start()

    @property
    def config(self) -> TransportConfig:
        return self._config

    def try_send(self, message: GelfMessage) -> bool:
        """Queue ``message`` without blocking.

        Returns:
            True if queued, False if the queue is full or the transport
            has been stopped.
        """
        if self._stop_event.is_set():
            return False
        try:
            self._queue.put_nowait(message)
        except queue.Full:
            logger.debug("GELF queue full, dropping message %r", message.message)
            return False
        return True

    def stop(self, timeout: float | None = 5.0) -> None:
        """Flush what is queued, then stop the worker and close the socket.

        Safe to call more than once.
        """
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if self._worker is not threading.current_thread():
            self._worker.join(timeout)

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    first = self._queue.get(timeout=0.1)
                except queue.Empty:
                    continue
                self._deliver(self._batch(first))
            # Flush whatever is left once; no reconnect attempts while stopping.
            while not self._queue.empty():
                self._deliver(self._batch(self._queue.get_nowait()))
        finally:
            self._sender.close()

    def _batch(self, first: GelfMessage) -> list[bytes]:
        batch = [first]
        while len(batch) < self._config.max_in_flight_sends:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        payloads = []
        for message in batch:
            try:
                payloads.append(encode(message))
            except (TypeError, ValueError):
                logger.exception("Unable to encode GELF message %r", message.message)
        return payloads

    def _deliver(self, payloads: list[bytes]) -> None:
        if not payloads:
            return
        delay = self._config.reconnect_delay / 1000
        while True:
            try:
                self._sender.send(payloads)
            except Exception as exc:
                self._sender.close()
                self._report_failure(len(payloads), exc)
                if not payloads or self._stop_event.wait(delay):
                    return
                continue
            if self._failing:
                logger.info("GELF input at %s:%d reachable again", *self._config.address)
                self._failing = False
            return

    def _report_failure(self, count: int, exc: Exception) -> None:
        host, port = self._config.address
        if self._failing:
            logger.debug("Retrying %d GELF messages to %s:%d: %s", count, host, port, exc)
            return
        self._failing = True
        logger.warning(
            "Unable to send %d GELF messages to %s:%d, retrying every %d ms: %s",
            count,
            host,
            port,
            self._config.reconnect_delay,
            exc,
            exc_info=not isinstance(exc, _SEND_ERRORS),
        )
