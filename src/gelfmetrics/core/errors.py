"""Exceptions raised by gelfmetrics."""


class InvalidConfiguration(ValueError):
    """A reporter or transport setting is missing or has the wrong type.

    Raised while configuring, before any socket or thread is created.
    """
