from __future__ import annotations

import math
import time
from typing import Callable, Optional, TypeVar

from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, stop_after_delay, wait_fixed

T = TypeVar("T")


class PollTimeout(Exception):
    def __init__(self, last: object, attempts: int):
        super().__init__(f"no terminal state after {attempts} checks")
        self.last = last
        self.attempts = attempts


def poll_until(
    fetch: Callable[[], T],
    *,
    is_done: Callable[[T], bool],
    is_failed: Optional[Callable[[T], bool]] = None,
    interval: float,
    timeout: float,
    sleep: Callable[[float], None] = time.sleep,
    on_poll: Optional[Callable[[T], None]] = None,
) -> T:
    """Call ``fetch`` every ``interval`` seconds until a terminal value shows up.

    Returns the first value for which ``is_done`` or ``is_failed`` holds; the
    caller decides what a failed value means. Gives up with ``PollTimeout``
    once ``timeout`` seconds have passed or ``ceil(timeout / interval) + 1``
    checks were made, whichever comes first. The delay bound is checked
    between fetches, so a slow final ``fetch`` can run past ``timeout``;
    callers bound each fetch themselves. Exceptions raised by ``fetch``
    propagate on the first occurrence.
    """
    failed = is_failed or (lambda _: False)

    def _pending(value: T) -> bool:
        return not (is_done(value) or failed(value))

    def _fetch() -> T:
        value = fetch()
        if on_poll is not None:
            on_poll(value)
        return value

    max_checks = max(1, math.ceil(timeout / interval) + 1) if interval > 0 else 1
    retrying = Retrying(
        retry=retry_if_result(_pending),
        wait=wait_fixed(interval),
        stop=stop_after_delay(timeout) | stop_after_attempt(max_checks),
        sleep=sleep,
        reraise=True,
    )
    try:
        return retrying(_fetch)
    except RetryError as e:
        last = e.last_attempt
        raise PollTimeout(last.result(), last.attempt_number) from None
