"""Wire encoders for outgoing messages."""
