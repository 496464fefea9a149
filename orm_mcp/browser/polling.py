"""
Bounded polling.

Every wait in the browser layer goes through wait_for(): a fixed polling
interval, a hard limit, and an optional caller deadline. The final sleep is
clipped to the remaining budget, so a wait never outlives its limit by more
than one probe.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from playwright.async_api import Error as PlaywrightError

from .outcomes import ElementNotFound

T = TypeVar("T")


class Deadline:
    """Absolute point in (monotonic) time by which an operation must finish."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self.spent()

    def spent(self, slack: float = 0.0) -> bool:
        """True when at most slack seconds are left."""
        remaining = self.remaining()
        return remaining is not None and remaining <= slack

    def clip(self, timeout: float) -> tuple[float, bool]:
        """
        Bound a component timeout by this deadline.

        Returns:
            (effective timeout, True if the deadline is the binding limit)
        """
        remaining = self.remaining()
        if remaining is not None and remaining < timeout:
            return remaining, True
        return timeout, False

    def __repr__(self):
        return f"Deadline(timeout={self.timeout}, remaining={self.remaining()})"


async def wait_for(
    probe: Callable[[], Awaitable[T | None]],
    timeout: float,
    interval: float,
) -> T | None:
    """
    Poll probe() until it returns a truthy value or timeout elapses.

    The probe runs at least once. Returns the probe's value, or None on timeout.
    """
    loop = asyncio.get_running_loop()
    limit = loop.time() + max(0.0, timeout)

    while True:
        result = await probe()
        if result:
            return result

        now = loop.time()
        if now >= limit:
            return None
        await asyncio.sleep(min(interval, limit - now))


async def wait_for_element(page, selector: str, timeout: float, interval: float, description: str = "element"):
    """
    Wait until an element matching selector is visible and enabled.

    Raises:
        ElementNotFound: when no interactable match appears within timeout
    """

    async def probe():
        try:
            element = await page.query_selector(selector)
            if element and await element.is_visible() and await element.is_enabled():
                return element
        except PlaywrightError:
            # Detached mid-check; try again on the next tick
            return None
        return None

    element = await wait_for(probe, timeout, interval)
    if element is None:
        raise ElementNotFound(f"Could not find the {description} on the page", detail=f"selector={selector!r}")
    return element


async def is_present(page, selector: str) -> bool:
    try:
        return await page.query_selector(selector) is not None
    except PlaywrightError:
        return False


async def is_visible(page, selector: str) -> bool:
    try:
        element = await page.query_selector(selector)
        return element is not None and await element.is_visible()
    except PlaywrightError:
        return False
