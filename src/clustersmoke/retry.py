"""Bounded polling primitive used for readiness waits."""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Union

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

Predicate = Callable[[], Union[bool, Awaitable[bool]]]


async def poll_until(
    predicate: Predicate,
    *,
    attempts: int,
    interval: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """Evaluate ``predicate`` up to ``attempts`` times, ``interval`` seconds apart.

    Returns True as soon as the predicate holds, False once the budget is
    spent. A budget of zero (or less) returns False without evaluating the
    predicate. There is no sleep after the final failed attempt. Exceptions
    raised by the predicate are not retried; they propagate to the caller.
    """
    if attempts <= 0:
        return False

    async def evaluate() -> bool:
        outcome = predicate()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return bool(outcome)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ok: not ok),
        sleep=sleep,
        retry_error_callback=lambda retry_state: False,
    )
    return await retrying(evaluate)
