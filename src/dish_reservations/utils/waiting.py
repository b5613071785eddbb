from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from dish_reservations.services.page_handle import PageHandle

T = TypeVar("T")


def poll_until(
    probe: Callable[[], T],
    *,
    page: PageHandle,
    timeout_ms: int,
    interval_ms: int = 250,
) -> T | None:
    """
    What it does:
    - Calls `probe` until it returns something truthy or `timeout_ms` has elapsed.

    Why it matters:
    - The reservation page exposes no "ready" signal, so every wait is a bounded poll.

    Behavior:
    - Sleeps through `page.sleep()` between probes, so the page stays the only
      thing we suspend on.
    - Elapsed time is the larger of wall-clock time and the sum of requested sleeps;
      a page with a virtual clock therefore still times out.
    - Always probes at least once. Returns None on timeout.
    """
    started = time.monotonic()
    slept_ms = 0
    while True:
        result = probe()
        if result:
            return result
        elapsed_ms = max(slept_ms, (time.monotonic() - started) * 1000)
        if elapsed_ms >= timeout_ms:
            return None
        step = min(interval_ms, max(1, int(timeout_ms - elapsed_ms)))
        page.sleep(step)
        slept_ms += step
