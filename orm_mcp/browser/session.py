"""
Authenticated browser session for the learning platform.

Uses Playwright to drive a single headless Chromium page:
- Login flow (email step, optional continue, password step)
- Cheap liveness probe before each operation
- Transparent re-login when the platform drops the session
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from pydantic import SecretStr

from . import pages
from .outcomes import (
    AuthError,
    AutomationError,
    ErrorKind,
    Fatal,
    OperationError,
    OperationOutcome,
    OperationTimeout,
    Success,
    map_failure,
)
from .polling import Deadline, is_present, wait_for, wait_for_element

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Account credentials. The password never appears in repr or logs."""

    user_id: str
    password: SecretStr = field(repr=False)


@dataclass(frozen=True)
class BrowserOptions:
    """Launch and timing options; all durations are seconds."""

    base_url: str = "https://learning.oreilly.com"
    login_url: str = "https://www.oreilly.com/member/login/"
    headless: bool = True
    navigation_timeout: float = 30.0
    action_timeout: float = 10.0
    login_timeout: float = 60.0
    poll_interval: float = 0.25
    retry_backoff: float = 1.0
    session_probe_interval: float = 600.0
    debug: bool = False
    state_dir: Path = Path.home() / ".local" / "state" / "orm-mcp"


@dataclass
class Session:
    """State of the single authenticated session owned by the manager."""

    credentials: Credentials
    live: bool = False
    last_activity: float | None = None

    def touch(self):
        self.last_activity = time.monotonic()

    def idle_for(self) -> float | None:
        if self.last_activity is None:
            return None
        return time.monotonic() - self.last_activity


PageFactory = Callable[[], Awaitable[Any]]


class BrowserSessionManager:
    """
    Owns the browser, its context and the one page all operations share.

    A page_factory can be injected to supply the page without launching
    Chromium.
    """

    def __init__(self, options: BrowserOptions, credentials: Credentials, page_factory: PageFactory | None = None):
        self.options = options
        self.session = Session(credentials=credentials)
        self.page = None
        self._page_factory = page_factory
        self._playwright = None
        self._browser = None
        self._context = None

    async def _ensure_browser(self):
        """Ensure browser is initialized."""
        if self._browser is not None:
            return

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.options.headless, args=["--no-sandbox", "--disable-dev-shm-usage"]
        )
        self._context = await self._browser.new_context(viewport={"width": 1280, "height": 720})
        logger.info(f"Browser initialized (headless={self.options.headless})")

    async def _ensure_page(self):
        if self.page is not None and not self.page.is_closed():
            return

        if self._page_factory is not None:
            self.page = await self._page_factory()
        else:
            await self._ensure_browser()
            self.page = await self._context.new_page()

        # A fresh page has no evidence of the session; force a full probe
        self.session.last_activity = None

    async def ensure_session(self, deadline: Deadline | None = None) -> OperationOutcome:
        """
        Make sure an authenticated page is available.

        Login and the session check are bounded by the caller's deadline as
        well as by their own timeouts.

        Returns:
            Success(page), Retryable(TIMEOUT) when the deadline ran out first,
            or Fatal(AUTHENTICATION_FAILED) when login fails
        """
        deadline = deadline or Deadline()
        try:
            await self._ensure_page()
            if not self.session.live:
                await self._login(deadline)
            elif not await self._probe(deadline):
                logger.info("Browser session expired, logging in again")
                await self._login(deadline)
                logger.info("Browser session re-authenticated")
        except OperationTimeout as e:
            logger.warning(f"Browser session not ready in time: {e.summary}")
            return map_failure(e)
        except (AutomationError, PlaywrightError) as e:
            self.session.live = False
            summary = e.summary if isinstance(e, AutomationError) else "Could not open the browser session"
            detail = e.detail if isinstance(e, AutomationError) else str(e)
            logger.error(f"Browser login failed: {summary}")
            if detail:
                logger.debug(f"Login failure detail: {detail}")
            await self.capture_debug_artifact("login_failure")
            return Fatal(OperationError(ErrorKind.AUTHENTICATION_FAILED, summary))

        return Success(self.page)

    async def recover(self, deadline: Deadline | None = None) -> OperationOutcome:
        """Force a fresh login after the platform dropped the session."""
        logger.info("Recovering expired browser session")
        self.session.live = False
        outcome = await self.ensure_session(deadline)
        if isinstance(outcome, Success):
            logger.info("Browser session re-authenticated")
        return outcome

    def touch(self):
        """Record activity on the live session."""
        self.session.touch()

    def _out_of_time(self, deadline: Deadline, what: str, detail: str | None = None) -> OperationTimeout | None:
        if deadline.spent(self.options.poll_interval):
            return OperationTimeout(f"Operation timed out while {what}", detail=detail)
        return None

    async def _probe(self, deadline: Deadline) -> bool:
        """
        Check the session is still authenticated.

        The quick check looks at the current URL only. After a long idle
        period the home page is loaded and the authenticated marker is
        required.

        Raises:
            OperationTimeout: when the deadline runs out before the check
                can tell either way
        """
        if self.page is None or self.page.is_closed():
            return False
        if pages.is_login_url(self.page.url, self.options.login_url):
            return False

        idle = self.session.idle_for()
        if idle is not None and idle < self.options.session_probe_interval:
            return True

        logger.debug("Running full session check")
        if deadline.expired():
            raise OperationTimeout("Operation timed out while checking the browser session")
        try:
            await self.page.goto(
                f"{self.options.base_url}/home/",
                wait_until="domcontentloaded",
                timeout=max(deadline.clip(self.options.navigation_timeout)[0], 0.001) * 1000,
            )
        except PlaywrightError as e:
            timed_out = self._out_of_time(deadline, "checking the browser session", str(e))
            if timed_out:
                raise timed_out
            logger.warning(f"Session check navigation failed: {e}")
            return False

        if pages.is_login_url(self.page.url, self.options.login_url):
            return False

        async def authenticated():
            return await is_present(self.page, pages.AUTHENTICATED_MARKER)

        alive = await wait_for(
            authenticated, deadline.clip(self.options.action_timeout)[0], self.options.poll_interval
        )
        if not alive:
            timed_out = self._out_of_time(deadline, "checking the browser session")
            if timed_out:
                raise timed_out
            return False

        self.session.touch()
        return True

    async def _login(self, deadline: Deadline):
        """
        Log in with the configured credentials.

        The whole flow fits in login_timeout or what is left of the caller's
        deadline, whichever is shorter.

        Raises:
            AuthError: when the credentials are rejected or the post-login
                marker never shows up
            OperationTimeout: when the caller's deadline runs out first
        """
        credentials = self.session.credentials
        if not credentials.user_id or not credentials.password.get_secret_value():
            raise AuthError("No platform credentials configured")

        opts = self.options
        if deadline.expired():
            raise OperationTimeout("Operation timed out before login could start")
        login = Deadline(deadline.clip(opts.login_timeout)[0])
        page = self.page
        logger.info("Logging in to the learning platform")

        try:
            await page.goto(
                opts.login_url,
                wait_until="domcontentloaded",
                timeout=max(login.clip(opts.navigation_timeout)[0], 0.001) * 1000,
            )

            email = await wait_for_element(
                page, pages.EMAIL_INPUT, login.clip(opts.action_timeout)[0], opts.poll_interval, "email field"
            )
            await email.fill(credentials.user_id)

            # The password field only appears after the email step on the two-step form
            password = await page.query_selector(pages.PASSWORD_INPUT)
            if password is None or not await password.is_visible():
                button = await wait_for_element(
                    page,
                    pages.CONTINUE_BUTTON,
                    login.clip(opts.action_timeout)[0],
                    opts.poll_interval,
                    "continue button",
                )
                await button.click()

            password = await wait_for_element(
                page, pages.PASSWORD_INPUT, login.clip(opts.action_timeout)[0], opts.poll_interval, "password field"
            )
            await password.fill(credentials.password.get_secret_value())

            submit = await wait_for_element(
                page, pages.SUBMIT_BUTTON, login.clip(opts.action_timeout)[0], opts.poll_interval, "sign-in button"
            )
            await submit.click()
        except PlaywrightTimeoutError as e:
            timed_out = self._out_of_time(deadline, "logging in", str(e))
            if timed_out:
                raise timed_out
            raise AuthError("Timed out waiting for the login page", detail=str(e))
        except PlaywrightError as e:
            raise AuthError("Could not complete the login form", detail=str(e))
        except AutomationError as e:
            timed_out = self._out_of_time(deadline, "logging in", e.detail)
            if timed_out:
                raise timed_out
            raise AuthError(f"Login failed: {e.summary}", detail=e.detail)

        async def login_settled():
            if await is_present(page, pages.AUTHENTICATED_MARKER):
                return "ok"
            if await is_present(page, pages.LOGIN_ERROR):
                return "rejected"
            return None

        result = await wait_for(login_settled, login.remaining() or 0.0, opts.poll_interval)
        if result == "rejected":
            raise AuthError("The platform rejected the credentials")
        if result is None:
            timed_out = self._out_of_time(deadline, "waiting for login to complete")
            if timed_out:
                raise timed_out
            raise AuthError("Login could not be confirmed within the login timeout")

        self.session.live = True
        self.session.touch()
        logger.info("Browser session authenticated")

    async def capture_debug_artifact(self, name: str) -> Path | None:
        """
        Save a full-page screenshot when debug mode is on.

        Returns:
            Path of the screenshot, or None when nothing was captured
        """
        if not self.options.debug or self.page is None or self.page.is_closed():
            return None

        directory = Path(self.options.state_dir) / "screenshots"
        path = directory / f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{name}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
        except (OSError, PlaywrightError) as e:
            logger.warning(f"Could not save debug screenshot {name}: {e}")
            return None

        logger.info(f"Saved debug screenshot: {path}")
        return path

    async def close(self):
        """Close browser and cleanup."""
        if self.page is not None and not self.page.is_closed():
            await self.page.close()
        self.page = None
        self.session.live = False

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
