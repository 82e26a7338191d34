"""Package-level exceptions."""


class PhareError(Exception):
    """Raised for configuration and programming errors, never for user-facing outcomes."""
