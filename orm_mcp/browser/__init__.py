"""
Browser automation for the learning platform.

Uses Playwright for the authenticated session and BeautifulSoup to read the
rendered pages. LearningPlatformClient is the entry point; every operation
returns Success, Retryable or Fatal.
"""

from .client import LearningPlatformClient
from .models import BookSearchHit, ChapterContent, Collection, ContentDetail, ContentRef, SearchResult, TocEntry
from .outcomes import ErrorKind, Fatal, OperationError, OperationOutcome, Retryable, Success
from .pages import SearchFilters
from .session import BrowserOptions, Credentials

__all__ = [
    "BookSearchHit",
    "BrowserOptions",
    "ChapterContent",
    "Collection",
    "ContentDetail",
    "ContentRef",
    "Credentials",
    "ErrorKind",
    "Fatal",
    "LearningPlatformClient",
    "OperationError",
    "OperationOutcome",
    "Retryable",
    "SearchFilters",
    "SearchResult",
    "Success",
    "TocEntry",
]
