"""NSE India upstream: request throttle, session cookie and JSON client."""

__all__ = ["client", "session", "throttle"]
