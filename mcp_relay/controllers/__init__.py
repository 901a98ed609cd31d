"""Process-facing surfaces of the relay (HTTP)."""
