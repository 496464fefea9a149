"""
UI interactions: writes on the platform's collections (playlists), and the
search box on a title's page.

Each action waits for every element it touches to become visible and
enabled, performs the interaction, and then polls for an observable effect.
Nothing here retries: a write whose effect could not be observed raises
ActionUnconfirmed and the caller decides.
"""

import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError

from . import pages
from .extractor import DOMExtractor, parse_collection, parse_collections
from .models import BookSearchHit, Collection
from .navigator import PageNavigator
from .outcomes import ActionUnconfirmed, ElementNotFound, NavigationTimeout, OperationTimeout
from .pages import PageState
from .polling import Deadline, is_present, is_visible, wait_for, wait_for_element
from .session import BrowserOptions

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Performs collection mutations and in-title searches through the UI."""

    def __init__(self, navigator: PageNavigator, extractor: DOMExtractor, options: BrowserOptions):
        self.navigator = navigator
        self.extractor = extractor
        self.options = options

    @property
    def page(self):
        return self.navigator.page

    def _budget(self, deadline: Deadline) -> float:
        timeout, _ = deadline.clip(self.options.action_timeout)
        if timeout <= 0:
            raise OperationTimeout("The operation did not finish before its deadline")
        return timeout

    async def _element(self, selector: str, description: str, deadline: Deadline):
        return await wait_for_element(self.page, selector, self._budget(deadline), self.options.poll_interval, description)

    async def _click(self, selector: str, description: str, deadline: Deadline):
        element = await self._element(selector, description, deadline)
        try:
            await element.click()
        except PlaywrightError as e:
            raise ElementNotFound(f"Could not click the {description}", detail=f"{selector!r}: {e}")

    async def _fill(self, selector: str, value: str, description: str, deadline: Deadline):
        element = await self._element(selector, description, deadline)
        try:
            await element.fill(value)
        except PlaywrightError as e:
            raise ElementNotFound(f"Could not fill in the {description}", detail=f"{selector!r}: {e}")

    async def _snapshot(self) -> str | None:
        try:
            return await self.page.content()
        except PlaywrightError:
            return None

    async def create_collection(self, name: str, description: str | None, deadline: Deadline) -> Collection:
        """
        Create a new, empty collection.

        Confirmed when the browser lands on a new collection page, or when a
        new card with the requested name shows up in the list.

        Raises:
            ActionUnconfirmed: the form was submitted but no new collection
                was observed (not idempotent; the collection may exist)
        """
        await self.navigator.goto(PageState.COLLECTION_LIST, deadline=deadline)
        existing = {collection.collection_id for collection in await self.extractor.extract_collections()}

        await self._click(pages.CREATE_COLLECTION_BUTTON, "new playlist button", deadline)
        await self._fill(pages.COLLECTION_NAME_INPUT, name, "playlist name field", deadline)
        if description:
            await self._fill(pages.COLLECTION_DESCRIPTION_INPUT, description, "playlist description field", deadline)
        await self._click(pages.COLLECTION_FORM_SUBMIT, "create playlist button", deadline)
        self.navigator.invalidate()

        async def created():
            url = self.page.url
            if pages.matches_page(url, PageState.COLLECTION_DETAIL):
                collection_id = pages.collection_id_from_url(url)
                if collection_id and collection_id not in existing:
                    return collection_id
            html = await self._snapshot()
            if not html:
                return None
            try:
                cards = parse_collections(html, self.options.base_url)
            except ElementNotFound:
                return None
            for card in cards:
                if card.collection_id not in existing and card.name == name:
                    return card.collection_id
            return None

        collection_id = await wait_for(created, self._budget(deadline), self.options.poll_interval)
        if not collection_id:
            raise ActionUnconfirmed(
                f"Creating playlist '{name}' could not be confirmed; it may or may not exist",
                detail=f"no new playlist observed at {self.page.url}",
            )

        logger.info(f"Created playlist {collection_id}")
        return Collection(
            collection_id=collection_id,
            name=name,
            item_count=0,
            description=description or None,
            url=f"{self.options.base_url}/playlists/{collection_id}/",
        )

    async def add_to_collection(self, collection_id: str, content_id: str, deadline: Deadline) -> dict[str, Any]:
        """
        Add a title to a collection. Safe to repeat.

        The collection is read first; a title that is already there is left
        alone and reported with added=False.
        """
        result = {"collection_id": collection_id, "content_id": content_id, "added": False}

        await self.navigator.goto(PageState.COLLECTION_DETAIL, {"collection_id": collection_id}, deadline)
        collection = await self.extractor.extract_collection(collection_id)
        if collection.contains(content_id):
            logger.info(f"{content_id} already in playlist {collection_id}")
            return result

        await self.navigator.goto(PageState.CONTENT_DETAIL, {"content_id": content_id}, deadline)
        await self._click(pages.ADD_TO_COLLECTION_BUTTON, "add to playlist button", deadline)

        option = await self._element(pages.picker_option(collection_id), "playlist in the picker", deadline)
        checked = pages.picker_option_checked(collection_id)
        if await is_present(self.page, checked):
            # Picker entries toggle, clicking a checked one would remove the title
            logger.info(f"{content_id} already in playlist {collection_id} according to the picker")
            return result

        try:
            await option.click()
        except PlaywrightError as e:
            raise ElementNotFound("Could not pick the playlist", detail=str(e))

        async def added():
            if await is_present(self.page, checked):
                return True
            return await is_visible(self.page, pages.CONFIRMATION_TOAST)

        if not await wait_for(added, self._budget(deadline), self.options.poll_interval):
            raise ActionUnconfirmed(
                "Adding the title to the playlist could not be confirmed",
                detail=f"no toast or checked entry for {collection_id}",
                idempotent=True,
            )

        logger.info(f"Added {content_id} to playlist {collection_id}")
        result["added"] = True
        return result

    async def remove_from_collection(self, collection_id: str, content_id: str, deadline: Deadline) -> dict[str, Any]:
        """
        Remove a title from a collection.

        A title that is not in the collection is a no-op (removed=False).
        """
        result = {"collection_id": collection_id, "content_id": content_id, "removed": False}

        await self.navigator.goto(PageState.COLLECTION_DETAIL, {"collection_id": collection_id}, deadline)
        collection = await self.extractor.extract_collection(collection_id)
        position = next((i for i, item in enumerate(collection.items) if item.content_id == content_id), None)
        if position is None:
            logger.info(f"{content_id} not in playlist {collection_id}, nothing to remove")
            return result

        async def remove_button():
            rows = await self.page.query_selector_all(pages.COLLECTION_ITEM)
            if len(rows) <= position:
                return None
            button = await rows[position].query_selector(pages.REMOVE_ITEM_BUTTON)
            if button and await button.is_visible() and await button.is_enabled():
                return button
            return None

        button = await wait_for(remove_button, self._budget(deadline), self.options.poll_interval)
        if button is None:
            raise ElementNotFound("Could not find the remove button for the title", detail=f"row {position}")
        try:
            await button.click()
        except PlaywrightError as e:
            raise ElementNotFound("Could not click the remove button", detail=str(e))

        async def gone():
            html = await self._snapshot()
            if not html:
                return False
            try:
                return not parse_collection(html, self.options.base_url, collection_id).contains(content_id)
            except ElementNotFound:
                return False

        async def settled():
            if await is_visible(self.page, pages.CONFIRM_REMOVE_BUTTON):
                return "confirm"
            if await gone():
                return "gone"
            return None

        state = await wait_for(settled, self._budget(deadline), self.options.poll_interval)
        if state == "confirm":
            await self._click(pages.CONFIRM_REMOVE_BUTTON, "remove confirmation button", deadline)
            state = "gone" if await wait_for(gone, self._budget(deadline), self.options.poll_interval) else None

        if state != "gone":
            raise ActionUnconfirmed(
                "Removing the title from the playlist could not be confirmed",
                detail=f"{content_id} still listed in {collection_id}",
            )

        logger.info(f"Removed {content_id} from playlist {collection_id}")
        result["removed"] = True
        return result

    async def search_in_content(self, content_id: str, term: str, deadline: Deadline) -> tuple[BookSearchHit, ...]:
        """
        Search inside one title with the search box on its page.

        Changes nothing on the platform. The results panel replaces the
        search box's previous results, so it is read only after it shows up.
        """
        await self.navigator.goto(PageState.CONTENT_DETAIL, {"content_id": content_id}, deadline)

        field = await self._element(pages.BOOK_SEARCH_INPUT, "search box", deadline)
        try:
            await field.fill(term)
            await field.press("Enter")
        except PlaywrightError as e:
            raise ElementNotFound("Could not use the search box", detail=str(e))

        async def results_shown():
            if await is_visible(self.page, pages.BOOK_SEARCH_RESULTS):
                return True
            return await is_visible(self.page, pages.BOOK_SEARCH_EMPTY)

        timeout, deadline_bound = deadline.clip(self.options.navigation_timeout)
        if not await wait_for(results_shown, timeout, self.options.poll_interval):
            if deadline_bound:
                raise OperationTimeout("The operation did not finish before its deadline")
            raise NavigationTimeout(
                f"The search results inside the title did not load within {timeout:g}s",
                detail=f"{content_id}: no {pages.BOOK_SEARCH_RESULTS!r}",
            )

        return await self.extractor.extract_book_search(content_id)
