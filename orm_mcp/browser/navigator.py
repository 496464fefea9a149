"""
Page navigation with readiness checks.

The navigator is the only component that changes the current PageState.
"""

import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from . import pages
from .outcomes import NavigationTimeout, OperationTimeout, SessionExpired, UnexpectedPage
from .pages import PAGE_SPECS, PageState
from .polling import Deadline, is_present, wait_for
from .session import BrowserOptions, BrowserSessionManager

logger = logging.getLogger(__name__)

PAGE_LABELS = {
    PageState.SEARCH: "search results",
    PageState.COLLECTION_LIST: "playlists",
    PageState.COLLECTION_DETAIL: "playlist",
    PageState.CONTENT_DETAIL: "content",
    PageState.CHAPTER: "chapter",
}


class PageNavigator:
    """Moves the shared page between the platform's logical pages."""

    def __init__(self, sessions: BrowserSessionManager, options: BrowserOptions):
        self.sessions = sessions
        self.options = options
        self.state = PageState.UNKNOWN

    @property
    def page(self):
        return self.sessions.page

    async def goto(self, target: PageState, params: dict[str, Any] | None = None, deadline: Deadline | None = None) -> PageState:
        """
        Navigate to a logical page and wait until it is ready.

        Ready means the page's content container or its empty marker is
        present. The whole call, load and readiness polling together, is
        bounded by min(navigation_timeout, deadline).

        Raises:
            NavigationTimeout: readiness not observed within navigation_timeout
            OperationTimeout: the caller's deadline ran out first
            SessionExpired: the platform redirected to its login page
            UnexpectedPage: error page, or a URL outside the expected path
        """
        deadline = deadline or Deadline()
        self.state = PageState.UNKNOWN

        if deadline.expired():
            raise OperationTimeout("The operation did not finish before its deadline")

        spec = PAGE_SPECS[target]
        label = PAGE_LABELS[target]
        url = pages.build_url(self.options.base_url, target, params)
        timeout, deadline_bound = deadline.clip(self.options.navigation_timeout)
        budget = Deadline(timeout)
        page = self.page

        logger.debug(f"Navigating to {target.value}: {url}")

        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=max(timeout, 0.001) * 1000)
        except PlaywrightTimeoutError as e:
            raise self._timeout(label, timeout, deadline_bound, detail=f"{url}: {e}")
        except PlaywrightError as e:
            raise UnexpectedPage(f"Could not open the {label} page", detail=f"{url}: {e}")

        async def landed():
            current = page.url
            if pages.is_login_url(current, self.options.login_url):
                return "login"
            if not pages.matches_page(current, target):
                return "elsewhere"
            if await is_present(page, pages.ERROR_PAGE_SELECTOR):
                return "error"
            if await is_present(page, spec.ready_selector):
                return "ready"
            if spec.empty_selector and await is_present(page, spec.empty_selector):
                return "ready"
            return None

        result = await wait_for(landed, budget.remaining() or 0.0, self.options.poll_interval)

        if result == "login":
            raise SessionExpired("The platform session has expired", detail=f"redirected from {url}")
        if result == "elsewhere":
            raise UnexpectedPage(
                f"The platform did not show the {label} page", detail=f"expected {url}, landed on {page.url}"
            )
        if result == "error":
            raise UnexpectedPage(f"The platform returned an error page for the {label} page", detail=url)
        if result is None:
            raise self._timeout(label, timeout, deadline_bound, detail=f"{url}: no {spec.ready_selector!r}")

        self.state = target
        return target

    def _timeout(self, label: str, timeout: float, deadline_bound: bool, detail: str = ""):
        if deadline_bound:
            return OperationTimeout("The operation did not finish before its deadline", detail=detail)
        return NavigationTimeout(f"The {label} page did not finish loading within {timeout:g}s", detail=detail)

    def invalidate(self):
        """Forget the current page after an action that may have navigated away."""
        self.state = PageState.UNKNOWN
