"""Exception hierarchy shared by the store, the fetchers and the sync coordinator."""

from __future__ import annotations


class SignalDeskError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidInput(SignalDeskError):
    """Request rejected before any network or store call."""


class InvalidSymbol(InvalidInput):
    """Symbol does not follow the canonical ``<BASE>USDT`` pair naming."""

    def __init__(self, symbol: str) -> None:
        super().__init__(
            f"Invalid symbol format: {symbol!r}. Expected a USDT pair such as BTCUSDT."
        )
        self.symbol = symbol


class Unauthorized(SignalDeskError):
    """Caller presented no usable identity."""


class Forbidden(SignalDeskError):
    """Caller is not the owner of the resource."""


class NotFound(SignalDeskError):
    """Referenced signal, thread or setting does not exist."""


class TooManyTags(SignalDeskError):
    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"{count} tags requested, at most {limit} allowed")
        self.count = count
        self.limit = limit


class UpstreamUnavailable(SignalDeskError):
    """Every fallback endpoint of an external provider failed or timed out."""

    def __init__(self, service: str, last_error: BaseException | None = None) -> None:
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"{service} unavailable{detail}")
        self.service = service
        self.last_error = last_error


class MessagingPlatformError(SignalDeskError):
    """The bot API answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteSyncFailure(SignalDeskError):
    """A best-effort remote update failed.

    Only ever handed to a sync observer; never raised out of the operation
    that scheduled the sync.
    """

    def __init__(self, operation: str, thread_id: str | None, cause: BaseException) -> None:
        super().__init__(f"{operation} failed for thread {thread_id}: {cause}")
        self.operation = operation
        self.thread_id = thread_id
        self.cause = cause
