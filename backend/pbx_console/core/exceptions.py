"""Root of the console's exception hierarchy."""


class ConsoleError(Exception):
    """Base exception for every error the console raises on purpose."""
