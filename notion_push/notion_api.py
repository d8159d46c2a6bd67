"""
Notion API wrapper for the push.

Provides the page and block operations the sync needs with:
- Rate limiting compliance
- Cursor pagination over block children
- Chunked appends under Notion's 100-children-per-request cap
- Tolerance for pages whose schema lacks an expected property
"""

import asyncio
import re
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from notion_client import AsyncClient
from notion_client.errors import (
    APIErrorCode,
    APIResponseError,
    HTTPResponseError,
    RequestTimeoutError,
)
from ratelimit import RateLimitException, limits
from rich.console import Console

from .config import (
    DEFAULT_STATUS_PROPERTY,
    DEFAULT_SYNC_STATUS_PROPERTY,
    DEFAULT_URL_PROPERTY,
    DEFAULT_VERSION_PROPERTY,
    Config,
)
from .errors import MalformedResponseError, RemoteApiError, RemoteErrorCode, RemoteValidationError
from .markdown_converter import Block, markdown_to_blocks

console = Console()

# Notion API rate limit: 3 requests per second
RATE_LIMIT_CALLS = 3
RATE_LIMIT_PERIOD = 1  # second

# Notion API limits
MAX_CHILDREN_PER_APPEND = 100
MAX_PAGE_SIZE = 100

# Notion reports an unknown property as a validation error with this text
PROPERTY_MISSING_PATTERN = re.compile(r"is not a property that exists", re.IGNORECASE)


@limits(calls=RATE_LIMIT_CALLS, period=RATE_LIMIT_PERIOD)
def _check_rate_limit() -> None:
    """Raise RateLimitException when the current period is used up."""


async def _throttle() -> None:
    """Wait until another request fits in the rate limit."""
    while True:
        try:
            _check_rate_limit()
            return
        except RateLimitException as e:
            await asyncio.sleep(e.period_remaining)


def translate_error(error: Exception) -> RemoteApiError:
    """Map a notion_client exception onto RemoteApiError with a RemoteErrorCode."""
    status = getattr(error, "status", None)

    if isinstance(error, APIResponseError):
        if error.code == APIErrorCode.ValidationError:
            code = (
                RemoteErrorCode.PROPERTY_NOT_FOUND
                if PROPERTY_MISSING_PATTERN.search(str(error))
                else RemoteErrorCode.OTHER
            )
            return RemoteValidationError(str(error), code, status)
        if error.code == APIErrorCode.RateLimited:
            return RemoteApiError(str(error), RemoteErrorCode.RATE_LIMITED, status)
        return RemoteApiError(str(error), RemoteErrorCode.OTHER, status)

    if isinstance(error, HTTPResponseError) and status == 429:
        return RemoteApiError(str(error), RemoteErrorCode.RATE_LIMITED, status)

    return RemoteApiError(str(error), RemoteErrorCode.OTHER, status)


class NotionAPI:
    """
    Wrapper around the async Notion client with rate limiting and utilities.

    Handles:
    - Authentication
    - Rate limiting (3 req/sec)
    - Page property updates
    - Paginated child listing, clearing and chunked appends
    """

    def __init__(self, config: Config, client: Optional[Any] = None):
        """
        Initialize the Notion API client.

        Args:
            config: Configuration instance with Notion token.
            client: Client to use instead of a new AsyncClient.
        """
        self.config = config
        self.client = client if client is not None else AsyncClient(auth=config.notion_token)
        self._request_count = 0

    async def _call(self, func: Callable[..., Awaitable[Any]], **kwargs) -> Any:
        """Execute a rate-limited API call, translating client errors."""
        await _throttle()
        self._request_count += 1

        try:
            return await func(**kwargs)
        except (APIResponseError, HTTPResponseError, RequestTimeoutError) as e:
            raise translate_error(e) from e

    async def _update_properties(self, page_id: str, properties: dict, missing_warning: str) -> None:
        """Update page properties, warning instead of failing if a property is absent."""
        try:
            await self._call(self.client.pages.update, page_id=page_id, properties=properties)
        except RemoteValidationError as e:
            if not e.property_missing:
                raise
            console.print(f"[yellow]Warning: {missing_warning} (page {page_id})[/yellow]")

    # =========================================================================
    # Page properties
    # =========================================================================

    async def update_title(self, page_id: str, title: str, link: Optional[str] = None) -> None:
        """
        Set the page title, optionally hyperlinked.

        Args:
            page_id: The Notion page ID.
            title: Title text.
            link: URL the title text links to.
        """
        text: dict[str, Any] = {"content": title}
        if link:
            text["link"] = {"url": link}

        await self._update_properties(
            page_id,
            {"title": {"type": "title", "title": [{"type": "text", "text": text}]}},
            "Page has no title property, skipping title update",
        )

    async def update_url(self, page_id: str, url: str, property_name: str = DEFAULT_URL_PROPERTY) -> None:
        """Set a URL property."""
        await self._update_properties(
            page_id,
            {property_name: {"type": "url", "url": url}},
            f"Page has no '{property_name}' URL property, skipping URL update",
        )

    async def update_status(self, page_id: str, status: str, property_name: str = DEFAULT_SYNC_STATUS_PROPERTY) -> None:
        """Set the sync status property."""
        await self._update_properties(
            page_id,
            {property_name: {"type": "status", "status": {"name": status}}},
            f"Page has no '{property_name}' property, skipping sync status update",
        )

    async def update_document_status(
        self,
        page_id: str,
        status: str,
        property_name: str = DEFAULT_STATUS_PROPERTY,
    ) -> None:
        """Set the document status property from frontmatter."""
        await self._update_properties(
            page_id,
            {property_name: {"type": "status", "status": {"name": status}}},
            f"Page has no '{property_name}' property, skipping document status update",
        )

    async def update_version(self, page_id: str, version: str, property_name: str = DEFAULT_VERSION_PROPERTY) -> None:
        """Set the version rich text property."""
        await self._update_properties(
            page_id,
            {
                property_name: {
                    "type": "rich_text",
                    "rich_text": [{"type": "text", "text": {"content": version}}],
                }
            },
            f"Page has no '{property_name}' property, skipping version update",
        )

    # =========================================================================
    # Block children
    # =========================================================================

    async def list_children(self, block_id: str, batch_size: int = 50) -> AsyncIterator[dict]:
        """
        Iterate over all children of a block, following Notion's pagination.

        Every call starts a fresh scan from the first child.

        Args:
            block_id: Block (or page) being listed.
            batch_size: Children fetched per request. Max 100.

        Raises:
            MalformedResponseError: If a response lacks results, has_more,
                or the cursor for the next page.
        """
        if not 1 <= batch_size <= MAX_PAGE_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_PAGE_SIZE}, got {batch_size}")

        start_cursor = None

        while True:
            kwargs: dict[str, Any] = {"block_id": block_id, "page_size": batch_size}
            if start_cursor:
                kwargs["start_cursor"] = start_cursor

            response = await self._call(self.client.blocks.children.list, **kwargs)

            if "results" not in response or "has_more" not in response:
                raise MalformedResponseError(block_id, "missing results or has_more")

            for block in response["results"]:
                yield block

            if not response["has_more"]:
                return

            start_cursor = response.get("next_cursor")
            if not start_cursor:
                raise MalformedResponseError(block_id, "has_more set without next_cursor")

    async def clear_children(self, block_id: str) -> int:
        """
        Delete every child of a block. Not atomic: a failure leaves the
        remaining children in place.

        Returns:
            Number of blocks deleted.
        """
        # Collect ids first; the listing cursor points at blocks being deleted
        child_ids = [block["id"] async for block in self.list_children(block_id)]

        for child_id in child_ids:
            await self._call(self.client.blocks.delete, block_id=child_id)

        return len(child_ids)

    async def append_markdown(
        self,
        block_id: str,
        markdown: str,
        preamble: Optional[list[Block]] = None,
    ) -> int:
        """
        Convert Markdown to Notion blocks and append them to an existing block.

        Args:
            block_id: Block which the Markdown blocks are appended to.
            markdown: Markdown as string.
            preamble: Blocks placed before the converted Markdown.

        Returns:
            Number of blocks appended.
        """
        blocks = list(preamble or []) + markdown_to_blocks(markdown)

        for start in range(0, len(blocks), MAX_CHILDREN_PER_APPEND):
            await self._call(
                self.client.blocks.children.append,
                block_id=block_id,
                children=blocks[start:start + MAX_CHILDREN_PER_APPEND],
            )

        return len(blocks)

    @property
    def request_count(self) -> int:
        """Number of API requests made."""
        return self._request_count
