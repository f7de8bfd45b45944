"""Error taxonomy shared by every connector plugin.

Each sentinel is an exception class, so callers match with ``except`` or
``isinstance`` instead of comparing values.  ``wrap_error`` attaches a
sentinel to an arbitrary cause while keeping the cause chain readable.
"""


class PluginError(Exception):
    """Base class for errors raised by connector plugins."""

    default_message = "plugin error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    def cause(self) -> BaseException:
        """Return the root of the ``__cause__`` chain (``self`` if none)."""
        err: BaseException = self
        while err.__cause__ is not None:
            err = err.__cause__
        return err


class NotYetInstalled(PluginError):
    default_message = "connector not yet installed"


class OperationNotImplemented(PluginError):
    default_message = "not implemented"


class InvalidConfig(PluginError):
    default_message = "invalid config"


class InvalidRequest(PluginError):
    default_message = "invalid request"


class MissingFromPayload(InvalidRequest):
    default_message = "missing from payload in request"


class MissingPageSize(InvalidRequest):
    default_message = "missing page size in request"


class CurrencyNotSupported(PluginError):
    default_message = "currency not supported"


class WebhookVerificationFailed(PluginError):
    default_message = "webhook verification error"


class UpstreamError(PluginError):
    """The vendor API answered with an error or could not be reached."""

    default_message = "upstream error"


def wrap_error(
    cause: BaseException,
    sentinel: type[PluginError],
    message: str | None = None,
) -> PluginError:
    """Build a ``sentinel`` instance that keeps ``cause`` as ``__cause__``.

    The message reads ``"<sentinel message>: <cause>"`` so logs show both the
    stable category and the underlying reason.
    """
    head = message or sentinel.default_message
    err = sentinel(f"{head}: {cause}")
    err.__cause__ = cause
    return err
