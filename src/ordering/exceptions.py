"""Errors raised by the ordering context beyond Protean's own."""


class PaymentProviderError(Exception):
    """The payment provider could not be reached or answered with an error.

    The charge outcome is unknown; the order stays pending.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class PaymentProviderTimeout(PaymentProviderError):
    """The payment provider did not answer within the configured timeout."""


class PersistenceError(Exception):
    """The checkout transaction was aborted and nothing was committed."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)
