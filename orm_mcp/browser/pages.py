"""
Logical pages of the learning platform.

Each page is described by a PageSpec: the path it lives at, the selector that
signals it has rendered, and the marker it shows when it is legitimately
empty. Selectors are plain CSS selector lists so they work both in the
browser and against HTML snapshots parsed with BeautifulSoup.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode, urljoin, urlparse


class PageState(str, Enum):
    SEARCH = "search"
    COLLECTION_LIST = "collection_list"
    COLLECTION_DETAIL = "collection_detail"
    CONTENT_DETAIL = "content_detail"
    CHAPTER = "chapter"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PageSpec:
    state: PageState
    path_pattern: re.Pattern
    ready_selector: str
    empty_selector: str | None = None


PAGE_SPECS: dict[PageState, PageSpec] = {
    PageState.SEARCH: PageSpec(
        state=PageState.SEARCH,
        path_pattern=re.compile(r"^/search/?$"),
        ready_selector='[data-testid="search-results"], .search-results',
        empty_selector='[data-testid="search-no-results"], .search-no-results',
    ),
    PageState.COLLECTION_LIST: PageSpec(
        state=PageState.COLLECTION_LIST,
        path_pattern=re.compile(r"^/playlists/?$"),
        ready_selector='[data-testid="playlists-list"], .playlists-list',
        empty_selector='[data-testid="playlists-empty"], .playlists-empty',
    ),
    PageState.COLLECTION_DETAIL: PageSpec(
        state=PageState.COLLECTION_DETAIL,
        path_pattern=re.compile(r"^/playlists/[^/]+/?$"),
        ready_selector='[data-testid="playlist-items"], .playlist-items',
        empty_selector='[data-testid="playlist-empty"], .playlist-empty',
    ),
    PageState.CONTENT_DETAIL: PageSpec(
        state=PageState.CONTENT_DETAIL,
        path_pattern=re.compile(r"^/(library/view|videos)/[^/]+/[^/]+/?"),
        ready_selector='[data-testid="content-detail"], .content-detail',
    ),
    PageState.CHAPTER: PageSpec(
        state=PageState.CHAPTER,
        path_pattern=re.compile(r"^/library/view/[^/]+/[^/]+/[^/]+\.x?html$"),
        ready_selector='[data-testid="chapter-content"], #sbo-rt-content',
    ),
}

ERROR_PAGE_SELECTOR = '[data-testid="error-page"], .error-page, .orm-ErrorPage'

# Login flow
EMAIL_INPUT = 'input[name="email"]'
CONTINUE_BUTTON = '[data-testid="login-continue"], .orm-Button-root'
PASSWORD_INPUT = 'input[name="password"], input[type="password"]'
SUBMIT_BUTTON = '[data-testid="login-submit"], form button[type="submit"]'
LOGIN_ERROR = '[data-testid="login-error"], .orm-LoginError'
AUTHENTICATED_MARKER = '[data-testid="user-menu"], .orm-UserMenu'

# Search results
SEARCH_ROW = '[data-testid="search-result"], .search-result'
ROW_TITLE = '[data-testid="title"], .title, h3, h2'
ROW_SUMMARY = '[data-testid="description"], .description, .summary'
ROW_AUTHOR = '[data-testid="author"], .author'
ROW_PUBLISHER = '[data-testid="publisher"], .publisher'
ROW_PUBLISHED = "time[datetime], .published-date"

# Collections
COLLECTION_CARD = '[data-testid="playlist-card"], .playlist-card'
COLLECTION_CARD_TITLE = '[data-testid="playlist-title"], .playlist-title, h3, h2'
COLLECTION_ITEM_COUNT = '[data-testid="item-count"], .item-count'
COLLECTION_TITLE = '[data-testid="playlist-title"], h1'
COLLECTION_DESCRIPTION = '[data-testid="playlist-description"], .playlist-description'
COLLECTION_ITEM = '[data-testid="playlist-item"], .playlist-item'
COLLECTION_ITEM_ADDED = "time[datetime], [data-added-at]"
CREATE_COLLECTION_BUTTON = '[data-testid="create-playlist"], .new-playlist'
COLLECTION_NAME_INPUT = 'input[name="name"], input[name="title"]'
COLLECTION_DESCRIPTION_INPUT = 'textarea[name="description"]'
COLLECTION_FORM_SUBMIT = '[data-testid="create-playlist-submit"], .create-playlist-submit'
REMOVE_ITEM_BUTTON = '[data-testid="remove-item"], .remove-item'
CONFIRM_REMOVE_BUTTON = '[data-testid="confirm-remove"], .confirm-remove'

# Content detail
ADD_TO_COLLECTION_BUTTON = '[data-testid="add-to-playlist"], .add-to-playlist'
CONFIRMATION_TOAST = '[data-testid="toast"], .orm-Toast'
CONTENT_TITLE = "h1"
CONTENT_DESCRIPTION = '[data-testid="content-description"], .content-description'
TOC_ENTRY = '[data-testid="toc"] li, .toc li'

# In-title search
BOOK_SEARCH_INPUT = '[data-testid="book-search-input"], form[role="search"] input[type="search"]'
BOOK_SEARCH_RESULTS = '[data-testid="book-search-results"], .book-search-results'
BOOK_SEARCH_EMPTY = '[data-testid="book-search-no-results"], .book-search-no-results'
BOOK_SEARCH_HIT = '[data-testid="book-search-hit"], .book-search-hit'
BOOK_SEARCH_SNIPPET = '[data-testid="snippet"], .snippet'

# Chapter reader
CODE_CAPTION = 'figcaption, [data-type="title"], .caption, h5'

ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:\-]*$")
CONTENT_URL_ID = re.compile(r"/(?:library/view|videos)/[^/]+/([^/?#]+)")
COLLECTION_URL_ID = re.compile(r"/playlists/([^/?#]+)/?")
CHAPTER_URL_FILE = re.compile(r"/library/view/[^/]+/[^/]+/([^/?#]+\.x?html)")
CHAPTER_SUFFIX = re.compile(r"\.x?html$")


def picker_option(collection_id: str) -> str:
    """Selector for a collection entry in the add-to-collection picker."""
    return f'[data-playlist-id="{collection_id}"]'


def picker_option_checked(collection_id: str) -> str:
    option = picker_option(collection_id)
    return f'{option}[aria-checked="true"], {option}[aria-pressed="true"]'


@dataclass(frozen=True)
class SearchFilters:
    """
    Search refinements.

    Pagination is caller-driven: one call extracts one results page.
    """

    content_types: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    page: int = 1
    rows: int | None = None

    def query_params(self) -> list[tuple[str, str]]:
        params = [("type", t) for t in self.content_types]
        params.extend(("language", lang) for lang in self.languages)
        if self.page > 1:
            params.append(("page", str(self.page)))
        return params


def build_url(base_url: str, target: PageState, params: dict[str, Any] | None = None) -> str:
    """Build the absolute URL of a logical page."""
    params = params or {}
    if target == PageState.SEARCH:
        filters: SearchFilters = params.get("filters") or SearchFilters()
        query = [("q", params["query"])] + filters.query_params()
        return f"{base_url}/search/?{urlencode(query)}"
    if target == PageState.COLLECTION_LIST:
        return f"{base_url}/playlists/"
    if target == PageState.COLLECTION_DETAIL:
        return f"{base_url}/playlists/{params['collection_id']}/"
    if target == PageState.CONTENT_DETAIL:
        return f"{base_url}/library/view/-/{params['content_id']}/"
    if target == PageState.CHAPTER:
        return f"{base_url}/library/view/-/{params['content_id']}/{params['chapter']}"
    raise ValueError(f"No URL for page {target}")


def is_login_url(url: str, login_url: str) -> bool:
    path = urlparse(url).path
    login_path = urlparse(login_url).path.rstrip("/")
    return bool(login_path and path.startswith(login_path)) or "/login" in path


def matches_page(url: str, target: PageState) -> bool:
    spec = PAGE_SPECS.get(target)
    if spec is None:
        return False
    return bool(spec.path_pattern.match(urlparse(url).path))


def absolute_url(base_url: str, href: str | None) -> str | None:
    if not href:
        return None
    return urljoin(base_url + "/", href.strip())


def content_id_from_url(url: str | None) -> str | None:
    if not url:
        return None
    match = CONTENT_URL_ID.search(urlparse(url).path)
    return match.group(1) if match else None


def collection_id_from_url(url: str | None) -> str | None:
    if not url:
        return None
    match = COLLECTION_URL_ID.search(urlparse(url).path)
    return match.group(1) if match else None


def content_type_from_url(url: str) -> str:
    path = urlparse(url).path
    if "/videos/" in path or "/video" in path:
        return "video"
    if "/library/view/" in path or "/book/" in path:
        return "book"
    return "unknown"


def chapter_from_url(url: str | None) -> str | None:
    if not url:
        return None
    match = CHAPTER_URL_FILE.search(urlparse(url).path)
    return match.group(1) if match else None
