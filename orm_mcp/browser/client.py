"""
Learning platform client.

The single entry point for discovery and collection operations. Every
operation validates its arguments, takes the browser lock, makes sure the
session is authenticated and returns an OperationOutcome; no exception from
the browser layer escapes this module.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from playwright.async_api import Error as PlaywrightError

from .actions import ActionExecutor
from .extractor import DOMExtractor
from .navigator import PageNavigator
from .outcomes import (
    AutomationError,
    ElementNotFound,
    ErrorKind,
    Fatal,
    InvalidArgument,
    NavigationTimeout,
    OperationError,
    OperationOutcome,
    OperationTimeout,
    SessionExpired,
    Success,
    UnexpectedPage,
    map_failure,
)
from .pages import CHAPTER_SUFFIX, ID_PATTERN, PageState, SearchFilters
from .polling import Deadline
from .session import BrowserOptions, BrowserSessionManager, Credentials, PageFactory

logger = logging.getLogger(__name__)

Operation = Callable[[Deadline], Awaitable[Any]]


def _require_id(value: str | None, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgument(f"{name} must not be empty")
    if not ID_PATTERN.match(value):
        raise InvalidArgument(f"{name} is not a valid identifier")
    return value


class LearningPlatformClient:
    """
    Drives one authenticated browser session against the platform.

    Browser work is serialized: concurrent calls queue on a single lock.
    Read operations retry once after a navigation timeout; write operations
    never retry.
    """

    def __init__(self, options: BrowserOptions, credentials: Credentials, page_factory: PageFactory | None = None):
        self.options = options
        self.sessions = BrowserSessionManager(options, credentials, page_factory=page_factory)
        self.navigator = PageNavigator(self.sessions, options)
        self.extractor = DOMExtractor(self.navigator, options.base_url)
        self.actions = ActionExecutor(self.navigator, self.extractor, options)
        self._lock = asyncio.Lock()

    @property
    def authenticated(self) -> bool:
        """Whether the browser session is currently logged in."""
        return self.sessions.session.live

    # Read operations

    async def search(
        self, query: str, filters: SearchFilters | None = None, timeout: float | None = None
    ) -> OperationOutcome:
        """Search the catalog. Success payload: tuple[SearchResult, ...]."""
        filters = filters or SearchFilters()
        try:
            query = (query or "").strip()
            if not query:
                raise InvalidArgument("query must not be empty")
            if filters.page < 1:
                raise InvalidArgument("page must be 1 or greater")
            if filters.rows is not None and filters.rows < 1:
                raise InvalidArgument("rows must be 1 or greater")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            await self.navigator.goto(PageState.SEARCH, {"query": query, "filters": filters}, deadline)
            results = await self.extractor.extract_search_results()
            if filters.rows is not None:
                results = results[: filters.rows]
            return results

        return await self._run("search", run, timeout, read=True)

    async def list_collections(self, timeout: float | None = None) -> OperationOutcome:
        """List the account's collections. Success payload: tuple[Collection, ...]."""

        async def run(deadline: Deadline):
            await self.navigator.goto(PageState.COLLECTION_LIST, deadline=deadline)
            return await self.extractor.extract_collections()

        return await self._run("list_collections", run, timeout, read=True)

    async def get_collection_details(self, collection_id: str, timeout: float | None = None) -> OperationOutcome:
        try:
            collection_id = _require_id(collection_id, "collection_id")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            await self.navigator.goto(PageState.COLLECTION_DETAIL, {"collection_id": collection_id}, deadline)
            return await self.extractor.extract_collection(collection_id)

        return await self._run("get_collection_details", run, timeout, read=True)

    async def get_content_details(self, content_id: str, timeout: float | None = None) -> OperationOutcome:
        try:
            content_id = _require_id(content_id, "content_id")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            await self.navigator.goto(PageState.CONTENT_DETAIL, {"content_id": content_id}, deadline)
            return await self.extractor.extract_content_detail(content_id)

        return await self._run("get_content_details", run, timeout, read=True)

    async def get_chapter_content(self, content_id: str, chapter: str, timeout: float | None = None) -> OperationOutcome:
        """
        Read one chapter in the reader view. Success payload: ChapterContent.

        chapter is the chapter file as listed in the table of contents
        ("ch01.html"); a bare name ("ch01") gets the .html suffix.
        """
        try:
            content_id = _require_id(content_id, "content_id")
            chapter = _require_id(chapter, "chapter")
        except InvalidArgument as e:
            return map_failure(e)
        if not CHAPTER_SUFFIX.search(chapter):
            chapter = f"{chapter}.html"

        async def run(deadline: Deadline):
            await self.navigator.goto(PageState.CHAPTER, {"content_id": content_id, "chapter": chapter}, deadline)
            return await self.extractor.extract_chapter(content_id, chapter)

        return await self._run("get_chapter_content", run, timeout, read=True)

    async def search_in_content(self, content_id: str, term: str, timeout: float | None = None) -> OperationOutcome:
        """Search inside one title. Success payload: tuple[BookSearchHit, ...]."""
        try:
            content_id = _require_id(content_id, "content_id")
            term = (term or "").strip()
            if not term:
                raise InvalidArgument("query must not be empty")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            return await self.actions.search_in_content(content_id, term, deadline)

        return await self._run("search_in_content", run, timeout, read=True)

    # Write operations

    async def create_collection(
        self, name: str, description: str | None = None, timeout: float | None = None
    ) -> OperationOutcome:
        """Create an empty collection. Success payload: Collection."""
        name = (name or "").strip()
        if not name:
            return map_failure(InvalidArgument("name must not be empty"))
        description = (description or "").strip() or None

        async def run(deadline: Deadline):
            return await self.actions.create_collection(name, description, deadline)

        return await self._run("create_collection", run, timeout, read=False)

    async def add_to_collection(self, collection_id: str, content_id: str, timeout: float | None = None) -> OperationOutcome:
        try:
            collection_id = _require_id(collection_id, "collection_id")
            content_id = _require_id(content_id, "content_id")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            return await self.actions.add_to_collection(collection_id, content_id, deadline)

        return await self._run("add_to_collection", run, timeout, read=False)

    async def remove_from_collection(
        self, collection_id: str, content_id: str, timeout: float | None = None
    ) -> OperationOutcome:
        try:
            collection_id = _require_id(collection_id, "collection_id")
            content_id = _require_id(content_id, "content_id")
        except InvalidArgument as e:
            return map_failure(e)

        async def run(deadline: Deadline):
            return await self.actions.remove_from_collection(collection_id, content_id, deadline)

        return await self._run("remove_from_collection", run, timeout, read=False)

    async def close(self):
        """Close the browser session."""
        async with self._lock:
            await self.sessions.close()
            self.navigator.invalidate()

    # Execution

    async def _run(self, name: str, operation: Operation, timeout: float | None, read: bool) -> OperationOutcome:
        deadline = Deadline(timeout)
        async with self._lock:
            start_time = time.monotonic()
            outcome = await self._execute(name, operation, deadline, read)
            duration_ms = int((time.monotonic() - start_time) * 1000)

        if isinstance(outcome, Success):
            logger.info(f"{name} succeeded in {duration_ms}ms")
        else:
            logger.warning(f"{name} failed in {duration_ms}ms: {outcome.error.kind.value}: {outcome.error.message}")
        return outcome

    async def _execute(self, name: str, operation: Operation, deadline: Deadline, read: bool) -> OperationOutcome:
        # Time spent queued on the lock counts against the caller's timeout
        if deadline.expired():
            return map_failure(OperationTimeout(f"{name} timed out waiting for the browser"))

        session = await self.sessions.ensure_session(deadline)
        if not isinstance(session, Success):
            return session

        recovered = False
        retried = False
        while True:
            try:
                payload = await operation(deadline)
            except SessionExpired as e:
                if recovered:
                    logger.error(f"{name}: session expired again after re-login ({e.detail})")
                    return Fatal(
                        OperationError(ErrorKind.AUTHENTICATION_FAILED, "The platform session could not be kept alive")
                    )
                recovered = True
                outcome = await self.sessions.recover(deadline)
                if not isinstance(outcome, Success):
                    return outcome
                continue
            except NavigationTimeout as e:
                if read and not retried and self._retry_fits(deadline):
                    retried = True
                    logger.warning(f"{name}: {e.summary}, retrying in {self.options.retry_backoff:g}s")
                    await asyncio.sleep(self.options.retry_backoff)
                    continue
                return map_failure(e)
            except (ElementNotFound, UnexpectedPage) as e:
                await self.sessions.capture_debug_artifact(name)
                return map_failure(e)
            except AutomationError as e:
                return map_failure(e)
            except PlaywrightError as e:
                self.navigator.invalidate()
                return map_failure(UnexpectedPage("The browser failed while performing the operation", detail=str(e)))

            self.sessions.touch()
            return Success(payload)

    def _retry_fits(self, deadline: Deadline) -> bool:
        """A read is retried only when the backoff and a full page load fit in what is left."""
        remaining = deadline.remaining()
        return remaining is None or remaining >= self.options.retry_backoff + self.options.navigation_timeout
