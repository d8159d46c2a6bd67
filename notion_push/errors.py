"""
Typed exceptions for the Markdown → Notion push.

Remote failures are translated once, in the Notion client, into
RemoteApiError carrying a RemoteErrorCode. Callers branch on the code,
never on the error text.
"""

from enum import Enum
from typing import Optional


class SyncError(Exception):
    """Base exception for all notion-push errors."""


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


class RemoteErrorCode(Enum):
    """Categories of remote failures the sync cares about."""
    PROPERTY_NOT_FOUND = "property_not_found"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


class RemoteApiError(SyncError):
    """Raised when a Notion API call fails."""

    def __init__(
        self,
        message: str,
        code: RemoteErrorCode = RemoteErrorCode.OTHER,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = code
        self.status = status


class RemoteValidationError(RemoteApiError):
    """Raised when Notion rejects a request body as invalid."""

    @property
    def property_missing(self) -> bool:
        """True when the page schema has no property with the given name."""
        return self.code is RemoteErrorCode.PROPERTY_NOT_FOUND


class MalformedResponseError(SyncError):
    """Raised when a listing response lacks its pagination fields."""

    def __init__(self, block_id: str, detail: str):
        super().__init__(f"Malformed children listing for block {block_id}: {detail}")
        self.block_id = block_id


class PageIdError(SyncError):
    """Raised when a notion_page reference yields no page id."""

    def __init__(self, reference: str):
        super().__init__(f"Could not get page ID from frontmatter: {reference!r}")
        self.reference = reference


class FrontmatterError(SyncError):
    """Raised when a document's frontmatter block cannot be parsed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"Invalid frontmatter in {file_path}: {reason}")
        self.file_path = file_path
        self.reason = reason
