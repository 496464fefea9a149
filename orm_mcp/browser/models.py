"""
Records extracted from the learning platform's rendered pages.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    """One search hit. title, content_id and url are always non-empty."""

    title: str
    content_id: str
    url: str
    content_type: str
    language: str | None = None
    summary: str | None = None
    authors: tuple[str, ...] = ()
    publisher: str | None = None
    published_date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["authors"] = list(self.authors)
        return data


@dataclass(frozen=True)
class ContentRef:
    content_id: str
    title: str
    added_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Collection:
    """A user collection (playlist) and, on detail pages, its ordered items."""

    collection_id: str
    name: str
    item_count: int
    items: tuple[ContentRef, ...] = ()
    description: str | None = None
    url: str | None = None

    def contains(self, content_id: str) -> bool:
        return any(item.content_id == content_id for item in self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection_id": self.collection_id,
            "name": self.name,
            "item_count": self.item_count,
            "items": [item.to_dict() for item in self.items],
            "description": self.description,
            "url": self.url,
        }


@dataclass(frozen=True)
class TocEntry:
    title: str
    level: int = 1
    href: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContentDetail:
    """Metadata and table of contents of a single title."""

    content_id: str
    title: str
    url: str
    content_type: str
    authors: tuple[str, ...] = ()
    publisher: str | None = None
    description: str | None = None
    language: str | None = None
    table_of_contents: tuple[TocEntry, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "title": self.title,
            "url": self.url,
            "content_type": self.content_type,
            "authors": list(self.authors),
            "publisher": self.publisher,
            "description": self.description,
            "language": self.language,
            "table_of_contents": [entry.to_dict() for entry in self.table_of_contents],
        }


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    anchor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CodeBlock:
    code: str
    language: str | None = None
    caption: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ImageRef:
    src: str
    alt: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LinkRef:
    """A link in chapter text. kind is "internal", "external" or "anchor"."""

    href: str
    text: str | None
    kind: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChapterContent:
    """The readable text of one chapter, in document order."""

    content_id: str
    chapter: str
    title: str
    url: str
    headings: tuple[Heading, ...] = ()
    paragraphs: tuple[str, ...] = ()
    code_blocks: tuple[CodeBlock, ...] = ()
    images: tuple[ImageRef, ...] = ()
    links: tuple[LinkRef, ...] = ()

    @property
    def word_count(self) -> int:
        return sum(len(paragraph.split()) for paragraph in self.paragraphs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "chapter": self.chapter,
            "title": self.title,
            "url": self.url,
            "headings": [heading.to_dict() for heading in self.headings],
            "paragraphs": list(self.paragraphs),
            "code_blocks": [block.to_dict() for block in self.code_blocks],
            "images": [image.to_dict() for image in self.images],
            "links": [link.to_dict() for link in self.links],
            "word_count": self.word_count,
        }


@dataclass(frozen=True)
class BookSearchHit:
    """A match for a search term inside one title."""

    content_id: str
    title: str
    url: str
    chapter: str | None = None
    snippet: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
