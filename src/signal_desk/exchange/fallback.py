"""Ordered endpoint fallback: try each strategy with a timeout, keep the first good answer."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import httpx

from signal_desk.errors import UpstreamUnavailable
from signal_desk.logging import get_logger

log = get_logger(__name__)

S = TypeVar("S")
R = TypeVar("R")


class EmptyPayload(ValueError):
    """Endpoint answered 2xx but with nothing usable."""


# Anything an endpoint can fail with that should move us on to the next one.
_FALLTHROUGH_ERRORS = (
    httpx.HTTPError,
    asyncio.TimeoutError,
    ValueError,
    KeyError,
    TypeError,
)


async def first_success(
    strategies: Sequence[S],
    attempt: Callable[[S], Awaitable[R]],
    *,
    service: str,
    timeout_for: Callable[[S], float],
    name_of: Callable[[S], str] = str,
) -> R:
    """Run *attempt* against each strategy in order and return the first result.

    A strategy fails when it raises, exceeds ``timeout_for(strategy)``
    seconds, or returns an empty result. When all fail, raise
    ``UpstreamUnavailable`` carrying the last error.
    """
    last_error: BaseException | None = None
    for strategy in strategies:
        name = name_of(strategy)
        try:
            result = await asyncio.wait_for(attempt(strategy), timeout=timeout_for(strategy))
        except _FALLTHROUGH_ERRORS as exc:
            if isinstance(exc, asyncio.TimeoutError):
                exc = TimeoutError(f"{name} timed out after {timeout_for(strategy)}s")
            log.warning("endpoint_failed", service=service, endpoint=name, error=str(exc))
            last_error = exc
            continue
        if not result:
            last_error = EmptyPayload(f"{name} returned an empty payload")
            log.warning("endpoint_empty", service=service, endpoint=name)
            continue
        log.debug("endpoint_ok", service=service, endpoint=name)
        return result

    log.error("all_endpoints_failed", service=service, error=str(last_error))
    raise UpstreamUnavailable(service, last_error)
