"""Wiring of the core reporter to the transport and scheduler adapters."""

from gelfmetrics.runtime.builder import GelfReporterBuilder, for_registry

__all__ = ["GelfReporterBuilder", "for_registry"]
