"""Example worker that reports its metrics and logs to Graylog.

Run with:
    python examples/report_to_graylog.py graylog.example.com

A local Graylog with a GELF UDP input on port 12201 receives one message
per metric every 10 seconds, plus the worker's WARNING and above logs.
Stop with Ctrl-C.
"""

import logging
import random
import sys
import time

from gelfmetrics import (
    GelfLogHandler,
    GelfTransport,
    InMemoryMetricRegistry,
    TimeUnit,
    TransportConfig,
    for_registry,
    get_logger,
)

logger = get_logger("examples.worker")


def process_job(registry: InMemoryMetricRegistry) -> None:
    """Pretend to process one job, recording how long it took."""
    with registry.timer("jobs.duration").time():
        time.sleep(random.uniform(0.01, 0.2))
    if random.random() < 0.05:
        registry.counter("jobs.failed").inc()
        logger.warning("Job failed", extra={"queue": "default"})
    else:
        registry.meter("jobs.processed").mark()


def main(host: str) -> None:
    registry = InMemoryMetricRegistry()
    queue: list[int] = []
    registry.gauge("queue.depth", lambda: len(queue))

    reporter = (
        for_registry(registry)
        .host(host, 12201)
        .prefixed_with("worker-01")
        .source("worker-01")
        .convert_durations_to(TimeUnit.MILLISECONDS)
        .additional_fields({"env": "dev"})
        .omit_nan_values(True)
        .build()
    )

    # Application logs go through a transport of their own
    log_transport = GelfTransport(TransportConfig(host=host))
    logging.getLogger().addHandler(
        GelfLogHandler(log_transport, source="worker-01", level=logging.WARNING)
    )

    reporter.start(10, TimeUnit.SECONDS)
    try:
        while True:
            queue[:] = range(random.randint(0, 50))
            process_job(registry)
    except KeyboardInterrupt:
        pass
    finally:
        reporter.stop()
        log_transport.stop()


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "127.0.0.1")
