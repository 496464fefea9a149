"""
Stub learning platform client for protocol tests.
"""

from orm_mcp.browser.models import BookSearchHit, ChapterContent, Collection, ContentRef, Heading, SearchResult
from orm_mcp.browser.outcomes import ErrorKind, Fatal, OperationError, Retryable, Success

RESULTS = (
    SearchResult(
        title="Fluent Python, 2nd Edition",
        content_id="9781492056348",
        url="https://learning.example.com/library/view/fluent-python-2nd/9781492056348/",
        content_type="book",
        authors=("Luciano Ramalho",),
    ),
)

CHAPTER = ChapterContent(
    content_id="9781492056348",
    chapter="ch01.html",
    title="The Python Data Model",
    url="https://learning.example.com/library/view/-/9781492056348/ch01.html",
    headings=(Heading(level=1, text="The Python Data Model"),),
    paragraphs=("Guido's sense of the aesthetics of language design is amazing.",),
)

HITS = (
    BookSearchHit(
        content_id="9781492056348",
        title="1. The Python Data Model",
        url="https://learning.example.com/library/view/-/9781492056348/ch01.html",
        chapter="ch01.html",
        snippet="special methods are the key",
    ),
)

COLLECTION = Collection(
    collection_id="pl-1",
    name="Python",
    item_count=1,
    items=(ContentRef(content_id="9781492056348", title="Fluent Python, 2nd Edition"),),
)


class StubClient:
    """Records calls and returns canned outcomes."""

    def __init__(self):
        self.calls = []
        self.authenticated = False
        self.outcomes = {}

    def _outcome(self, name, default):
        return self.outcomes.get(name, default)

    async def search(self, query, filters=None, timeout=None):
        self.calls.append(("search", query, filters, timeout))
        return self._outcome("search", Success(RESULTS))

    async def get_content_details(self, content_id, timeout=None):
        self.calls.append(("get_content_details", content_id, timeout))
        return self._outcome(
            "get_content_details",
            Fatal(OperationError(ErrorKind.NAVIGATION_ERROR, "The platform returned an error page for the content page")),
        )

    async def get_chapter_content(self, content_id, chapter, timeout=None):
        self.calls.append(("get_chapter_content", content_id, chapter, timeout))
        return self._outcome("get_chapter_content", Success(CHAPTER))

    async def search_in_content(self, content_id, term, timeout=None):
        self.calls.append(("search_in_content", content_id, term, timeout))
        return self._outcome("search_in_content", Success(HITS))

    async def list_collections(self, timeout=None):
        self.calls.append(("list_collections", timeout))
        return self._outcome("list_collections", Success((COLLECTION,)))

    async def get_collection_details(self, collection_id, timeout=None):
        self.calls.append(("get_collection_details", collection_id, timeout))
        return self._outcome("get_collection_details", Success(COLLECTION))

    async def create_collection(self, name, description=None, timeout=None):
        self.calls.append(("create_collection", name, description, timeout))
        return self._outcome(
            "create_collection", Success(Collection(collection_id="pl-2", name=name, item_count=0, description=description))
        )

    async def add_to_collection(self, collection_id, content_id, timeout=None):
        self.calls.append(("add_to_collection", collection_id, content_id, timeout))
        return self._outcome(
            "add_to_collection",
            Retryable(
                OperationError(
                    ErrorKind.ACTION_UNCONFIRMED, "Adding the title to the playlist could not be confirmed", retryable=True
                )
            ),
        )

    async def remove_from_collection(self, collection_id, content_id, timeout=None):
        self.calls.append(("remove_from_collection", collection_id, content_id, timeout))
        return self._outcome(
            "remove_from_collection", Success({"collection_id": collection_id, "content_id": content_id, "removed": False})
        )

    async def close(self):
        self.calls.append(("close",))
