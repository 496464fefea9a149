"""
Structured records from rendered pages.

The extractor takes one HTML snapshot of the current page and parses it with
BeautifulSoup. Required fields are checked explicitly: a record that lacks
one fails the whole extraction instead of being returned half-filled.
"""

import logging
import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError

from . import pages
from .models import (
    BookSearchHit,
    ChapterContent,
    CodeBlock,
    Collection,
    ContentDetail,
    ContentRef,
    Heading,
    ImageRef,
    LinkRef,
    SearchResult,
    TocEntry,
)
from .navigator import PageNavigator
from .outcomes import ElementNotFound, UnexpectedPage
from .pages import PAGE_SPECS, PageState

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"\d[\d,]*")


def _text(node: Tag | None) -> str | None:
    if node is None:
        return None
    text = _WHITESPACE.sub(" ", node.get_text(" ", strip=True)).strip()
    return text or None


def _select_text(parent: Tag, selector: str) -> str | None:
    return _text(parent.select_one(selector))


def _all_text(parent: Tag, selector: str) -> tuple[str, ...]:
    values = (_text(node) for node in parent.select(selector))
    return tuple(value for value in values if value)


def _link(parent: Tag, preferred: Tag | None = None) -> str | None:
    for node in (preferred, parent):
        if node is None:
            continue
        if node.name == "a" and node.get("href"):
            return node["href"]
        anchor = node.select_one("a[href]")
        if anchor is not None:
            return anchor["href"]
    return None


def _timestamp(parent: Tag, selector: str) -> str | None:
    node = parent.select_one(selector)
    if node is None:
        return None
    return node.get("datetime") or node.get("data-added-at") or _text(node)


def _require(value, what: str, where: str):
    if not value:
        raise ElementNotFound(f"{where} is missing its {what}", detail=f"{where}: no {what}")
    return value


def _is_empty_page(soup: BeautifulSoup, state: PageState) -> bool:
    selector = PAGE_SPECS[state].empty_selector
    return bool(selector and soup.select_one(selector))


def parse_search_results(html: str, base_url: str) -> tuple[SearchResult, ...]:
    """
    Parse the search results page.

    Returns an empty tuple only when the page shows its no-results marker.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows = soup.select(pages.SEARCH_ROW)
    if not rows:
        if _is_empty_page(soup, PageState.SEARCH):
            return ()
        raise ElementNotFound("The search results could not be read", detail=f"no rows matching {pages.SEARCH_ROW!r}")

    results = []
    for index, row in enumerate(rows, start=1):
        where = f"Search result {index}"
        title_node = row.select_one(pages.ROW_TITLE)
        title = _require(_text(title_node), "title", where)
        url = _require(pages.absolute_url(base_url, _link(row, title_node)), "link", where)
        content_id = _require(row.get("data-content-id") or pages.content_id_from_url(url), "content id", where)

        published = row.select_one(pages.ROW_PUBLISHED)
        results.append(
            SearchResult(
                title=title,
                content_id=content_id,
                url=url,
                content_type=row.get("data-content-type") or pages.content_type_from_url(url),
                language=row.get("data-language") or row.get("lang"),
                summary=_select_text(row, pages.ROW_SUMMARY),
                authors=_all_text(row, pages.ROW_AUTHOR),
                publisher=_select_text(row, pages.ROW_PUBLISHER),
                published_date=(published.get("datetime") or _text(published)) if published else None,
            )
        )

    return tuple(results)


def _parse_count(node: Tag | None) -> int | None:
    text = _text(node)
    if not text:
        return None
    match = _NUMBER.search(text)
    return int(match.group(0).replace(",", "")) if match else None


def parse_collections(html: str, base_url: str) -> tuple[Collection, ...]:
    """Parse the collection overview page. Items are not listed there."""
    soup = BeautifulSoup(html, "html.parser")
    cards = soup.select(pages.COLLECTION_CARD)
    if not cards:
        if _is_empty_page(soup, PageState.COLLECTION_LIST):
            return ()
        raise ElementNotFound("The playlists could not be read", detail=f"no cards matching {pages.COLLECTION_CARD!r}")

    collections = []
    for index, card in enumerate(cards, start=1):
        where = f"Playlist {index}"
        title_node = card.select_one(pages.COLLECTION_CARD_TITLE)
        url = pages.absolute_url(base_url, _link(card, title_node))
        collection_id = _require(card.get("data-playlist-id") or pages.collection_id_from_url(url), "id", where)
        name = _require(_text(title_node), "name", where)

        count = card.get("data-item-count")
        item_count = int(count) if count and count.isdigit() else _parse_count(card.select_one(pages.COLLECTION_ITEM_COUNT))
        if item_count is None:
            raise ElementNotFound(f"{where} is missing its item count", detail=f"{where}: no item count")

        collections.append(
            Collection(
                collection_id=collection_id,
                name=name,
                item_count=item_count,
                description=_select_text(card, pages.COLLECTION_DESCRIPTION),
                url=url or f"{base_url}/playlists/{collection_id}/",
            )
        )

    return tuple(collections)


def parse_collection(html: str, base_url: str, collection_id: str) -> Collection:
    """Parse a collection detail page, items in page order."""
    soup = BeautifulSoup(html, "html.parser")
    name = _require(_select_text(soup, pages.COLLECTION_TITLE), "name", "The playlist")

    rows = soup.select(pages.COLLECTION_ITEM)
    if not rows and not _is_empty_page(soup, PageState.COLLECTION_DETAIL):
        raise ElementNotFound("The playlist items could not be read", detail=f"no rows matching {pages.COLLECTION_ITEM!r}")

    items = []
    for index, row in enumerate(rows, start=1):
        where = f"Playlist item {index}"
        title_node = row.select_one(pages.ROW_TITLE)
        url = pages.absolute_url(base_url, _link(row, title_node))
        items.append(
            ContentRef(
                content_id=_require(row.get("data-content-id") or pages.content_id_from_url(url), "content id", where),
                title=_require(_text(title_node), "title", where),
                added_at=_timestamp(row, pages.COLLECTION_ITEM_ADDED),
            )
        )

    return Collection(
        collection_id=collection_id,
        name=name,
        item_count=len(items),
        items=tuple(items),
        description=_select_text(soup, pages.COLLECTION_DESCRIPTION),
        url=f"{base_url}/playlists/{collection_id}/",
    )


def _toc_level(node: Tag) -> int:
    level = node.get("data-level")
    if level and level.isdigit():
        return int(level)
    return len(node.find_parents("li")) + 1


def parse_content_detail(html: str, base_url: str, content_id: str, url: str) -> ContentDetail:
    soup = BeautifulSoup(html, "html.parser")
    container = soup.select_one(PAGE_SPECS[PageState.CONTENT_DETAIL].ready_selector) or soup
    title = _require(_select_text(container, pages.CONTENT_TITLE), "title", "The content page")

    toc = []
    for node in container.select(pages.TOC_ENTRY):
        anchor = node.find("a", href=True)
        label = _text(anchor) if anchor else _text(node)
        if not label:
            continue
        toc.append(
            TocEntry(
                title=label,
                level=_toc_level(node),
                href=pages.absolute_url(base_url, anchor["href"]) if anchor else None,
            )
        )

    return ContentDetail(
        content_id=content_id,
        title=title,
        url=url,
        content_type=container.get("data-content-type") or pages.content_type_from_url(url),
        authors=_all_text(container, pages.ROW_AUTHOR),
        publisher=_select_text(container, pages.ROW_PUBLISHER),
        description=_select_text(container, pages.CONTENT_DESCRIPTION),
        language=container.get("data-language"),
        table_of_contents=tuple(toc),
    )


_CODE_LANGUAGE = re.compile(r"(?:language-|highlight-|lang-)([\w+#-]+)")
_HEADINGS = ("h1", "h2", "h3", "h4", "h5", "h6")


def _code_language(pre: Tag) -> str | None:
    for node in (pre, pre.find("code")):
        if node is None:
            continue
        language = node.get("data-code-language") or node.get("data-language")
        if language:
            return language
        match = _CODE_LANGUAGE.search(" ".join(node.get("class", [])))
        if match:
            return match.group(1)
    return None


def _code_caption(pre: Tag) -> str | None:
    example = pre.find_parent("figure") or pre.find_parent(attrs={"data-type": "example"})
    if example is None:
        return None
    return _select_text(example, pages.CODE_CAPTION)


def _link_kind(href: str, page_url: str) -> str:
    host = urlparse(href).netloc
    if host and host != urlparse(page_url).netloc:
        return "external"
    return "internal"


def parse_chapter(html: str, content_id: str, chapter: str, url: str) -> ChapterContent:
    """
    Parse the reader view of a chapter.

    Headings, paragraphs, code listings, images and links are collected in
    document order. Text inside a code listing only counts as code.
    """
    soup = BeautifulSoup(html, "html.parser")
    body = soup.select_one(PAGE_SPECS[PageState.CHAPTER].ready_selector)
    if body is None:
        raise ElementNotFound("The chapter text could not be read", detail="no chapter container")

    headings, paragraphs, code_blocks, images, links = [], [], [], [], []
    for node in body.find_all([*_HEADINGS, "p", "pre", "img", "a"]):
        if node.find_parent("pre") is not None:
            continue
        if node.name in _HEADINGS:
            text = _text(node)
            if text:
                headings.append(Heading(level=int(node.name[1]), text=text, anchor=node.get("id")))
        elif node.name == "p":
            text = _text(node)
            if text:
                paragraphs.append(text)
        elif node.name == "pre":
            code = node.get_text().strip("\n")
            if code.strip():
                code_blocks.append(CodeBlock(code=code, language=_code_language(node), caption=_code_caption(node)))
        elif node.name == "img":
            src = node.get("src")
            if src:
                images.append(ImageRef(src=urljoin(url, src), alt=node.get("alt") or None))
        else:
            href = (node.get("href") or "").strip()
            if not href:
                continue
            if href.startswith("#"):
                links.append(LinkRef(href=href, text=_text(node), kind="anchor"))
            else:
                target = urljoin(url, href)
                links.append(LinkRef(href=target, text=_text(node), kind=_link_kind(target, url)))

    if not (headings or paragraphs or code_blocks):
        raise ElementNotFound("The chapter text could not be read", detail=f"{chapter}: empty chapter container")

    title = next((h.text for h in headings if h.level == 1), None) or (headings[0].text if headings else chapter)
    return ChapterContent(
        content_id=content_id,
        chapter=chapter,
        title=title,
        url=url,
        headings=tuple(headings),
        paragraphs=tuple(paragraphs),
        code_blocks=tuple(code_blocks),
        images=tuple(images),
        links=tuple(links),
    )


def parse_book_search(html: str, base_url: str, content_id: str) -> tuple[BookSearchHit, ...]:
    """
    Parse the results panel of the in-title search.

    Returns an empty tuple only when the panel shows its no-matches marker.
    """
    soup = BeautifulSoup(html, "html.parser")
    panel = soup.select_one(pages.BOOK_SEARCH_RESULTS)
    rows = panel.select(pages.BOOK_SEARCH_HIT) if panel is not None else []
    if not rows:
        if soup.select_one(pages.BOOK_SEARCH_EMPTY):
            return ()
        raise ElementNotFound(
            "The search results inside the title could not be read",
            detail=f"no rows matching {pages.BOOK_SEARCH_HIT!r}",
        )

    hits = []
    for index, row in enumerate(rows, start=1):
        where = f"Search match {index}"
        anchor = row if row.name == "a" else row.select_one("a[href]")
        url = _require(pages.absolute_url(base_url, _link(row, anchor)), "link", where)
        hits.append(
            BookSearchHit(
                content_id=content_id,
                title=_require(_select_text(row, pages.ROW_TITLE) or _text(anchor), "title", where),
                url=url,
                chapter=pages.chapter_from_url(url),
                snippet=_select_text(row, pages.BOOK_SEARCH_SNIPPET),
            )
        )

    return tuple(hits)


class DOMExtractor:
    """Reads records off the page the navigator has made ready."""

    def __init__(self, navigator: PageNavigator, base_url: str):
        self.navigator = navigator
        self.base_url = base_url

    async def _snapshot(self, expected: PageState) -> str:
        if self.navigator.state != expected:
            raise UnexpectedPage(
                "The browser is not on the expected page",
                detail=f"expected {expected.value}, current {self.navigator.state.value}",
            )
        try:
            return await self.navigator.page.content()
        except PlaywrightError as e:
            raise UnexpectedPage("Could not read the current page", detail=str(e))

    async def extract_search_results(self) -> tuple[SearchResult, ...]:
        results = parse_search_results(await self._snapshot(PageState.SEARCH), self.base_url)
        logger.debug(f"Extracted {len(results)} search results")
        return results

    async def extract_collections(self) -> tuple[Collection, ...]:
        collections = parse_collections(await self._snapshot(PageState.COLLECTION_LIST), self.base_url)
        logger.debug(f"Extracted {len(collections)} playlists")
        return collections

    async def extract_collection(self, collection_id: str) -> Collection:
        return parse_collection(await self._snapshot(PageState.COLLECTION_DETAIL), self.base_url, collection_id)

    async def extract_content_detail(self, content_id: str) -> ContentDetail:
        html = await self._snapshot(PageState.CONTENT_DETAIL)
        return parse_content_detail(html, self.base_url, content_id, self.navigator.page.url)

    async def extract_chapter(self, content_id: str, chapter: str) -> ChapterContent:
        html = await self._snapshot(PageState.CHAPTER)
        content = parse_chapter(html, content_id, chapter, self.navigator.page.url)
        logger.debug(f"Extracted chapter {chapter}: {content.word_count} words")
        return content

    async def extract_book_search(self, content_id: str) -> tuple[BookSearchHit, ...]:
        hits = parse_book_search(await self._snapshot(PageState.CONTENT_DETAIL), self.base_url, content_id)
        logger.debug(f"Extracted {len(hits)} matches inside {content_id}")
        return hits
