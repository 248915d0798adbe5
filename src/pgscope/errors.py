class PgScopeError(Exception):
    """Base class for every error raised while building a scope."""


class InvalidArgument(PgScopeError, ValueError):
    """Raised when a builder is called with an argument of the wrong shape."""


class ConfigurationError(PgScopeError):
    """Raised when column or association metadata cannot be resolved."""
