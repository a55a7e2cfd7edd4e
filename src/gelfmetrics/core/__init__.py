"""Core domain: models, ports and the reporter."""
