"""
Domain errors raised by services and repositories.

Routers translate them into HTTP responses; request validation errors come
from pydantic and never reach this module.
"""


class SafeHerError(Exception):
    """Base class for errors the API knows how to report."""


class NotFound(SafeHerError):
    pass


class RateLimited(SafeHerError):
    pass


class Unavailable(SafeHerError):
    """Storage or a dependent service could not be reached."""
