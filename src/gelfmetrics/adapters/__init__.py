"""Adapters implementing the core ports: registry, transport, scheduling, logging."""
