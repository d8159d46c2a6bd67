"""
YAML frontmatter handling for sync-managed Markdown documents.

A document is sync-managed when its frontmatter names the Notion page it
is pushed to:

    ---
    notion_page: https://www.notion.so/My-Doc-0123456789abcdef0123456789abcdef
    title: My Doc
    status: Draft
    version: 1.2
    ---
    # Body...

Documents without a usable `notion_page` are not errors; they are simply
not pushed.
"""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Optional, Union
from urllib.parse import urlparse

import yaml

from .errors import FrontmatterError, PageIdError

FRONTMATTER_PATTERN = re.compile(r"^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)", re.DOTALL)

KNOWN_FIELDS = ("notion_page", "title", "status", "version", "description", "authors")


@dataclass
class Frontmatter:
    """Metadata block of a sync-managed document."""

    notion_page: str
    title: Optional[str] = None
    status: Optional[str] = None
    version: Optional[Union[str, int, float]] = None
    description: Optional[str] = None
    authors: Optional[Union[str, list[str]]] = None

    # Any other keys the author put in the frontmatter
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Frontmatter":
        """
        Build a Frontmatter from parsed YAML.

        Raises:
            ValueError: If the data does not pass is_notion_frontmatter.
        """
        if not is_notion_frontmatter(data):
            raise ValueError("Frontmatter has no usable notion_page")

        return cls(
            notion_page=data["notion_page"],
            title=data.get("title"),
            status=data.get("status"),
            version=data.get("version"),
            description=data.get("description"),
            authors=data.get("authors"),
            extra={k: v for k, v in data.items() if k not in KNOWN_FIELDS},
        )

    @property
    def version_text(self) -> Optional[str]:
        """Version coerced to display text."""
        if self.version is None:
            return None
        return str(self.version)


@dataclass
class Document:
    """A Markdown file split into frontmatter data and body."""

    path: str
    data: dict[str, Any]
    content: str


def is_notion_frontmatter(data: Any) -> bool:
    """Check whether parsed frontmatter describes a sync-managed document."""
    if not isinstance(data, dict):
        return False
    if not isinstance(data.get("notion_page"), str):
        return False
    return data.get("title") is None or isinstance(data.get("title"), str)


def parse_document(text: str, path: str = "<string>") -> Document:
    """
    Split Markdown text into frontmatter data and body.

    Args:
        text: Full file contents.
        path: File path, used in error messages.

    Returns:
        Document with an empty data dict when there is no frontmatter.

    Raises:
        FrontmatterError: If the frontmatter block is not valid YAML.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return Document(path=path, data={}, content=text)

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise FrontmatterError(path, str(e))

    # A scalar or list frontmatter is not metadata we understand
    if not isinstance(data, dict):
        data = {}

    return Document(path=path, data=data, content=text[match.end():])


def resolve_page_id(notion_page: str) -> str:
    """
    Resolve a notion_page reference to a page id.

    Examples:
        "https://www.notion.so/team/My-Doc-abcdef123456" -> "abcdef123456"
        "abcdef123456" -> "abcdef123456"

    Raises:
        PageIdError: If no id can be derived.
    """
    if notion_page.startswith("http"):
        path = urlparse(notion_page).path.rstrip("/")
        page_id = PurePosixPath(path).name.split("-")[-1]
    else:
        page_id = notion_page

    if not page_id:
        raise PageIdError(notion_page)

    return page_id
