"""Exceptions raised by provider backends. The router converts them into results."""


class KrishiRouterError(Exception):
    """Base class for all krishi-router errors."""

    def __init__(self, message: str, *, backend: str = ""):
        super().__init__(message)
        self.backend = backend


class MissingCredentialError(KrishiRouterError):
    """A keyed provider was selected but no key was supplied. Raised before any network I/O."""


class ProviderResponseError(KrishiRouterError):
    """The provider answered, but not with a payload we can read."""
