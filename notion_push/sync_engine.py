"""
Main sync engine for Markdown → Notion pushes.

Orchestrates, per changed file:
- Frontmatter parsing and page id resolution
- Sync status bookkeeping on the Notion page
- Property updates (GitHub URL, title, status, version)
- Replacing the page body with the converted Markdown
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.table import Table

from .config import Config
from .frontmatter import Frontmatter, is_notion_frontmatter, parse_document, resolve_page_id
from .git_handler import GitHandler
from .markdown_converter import Block, markdown_to_rich_text
from .notion_api import NotionAPI
from .retry import Failure, retry

console = Console()


class SyncStatus(Enum):
    """Values written to a page's sync status property."""
    SYNCING = "Syncing..."
    SYNCED = "Synced"
    ERROR = "Error"


@dataclass
class FileFailure:
    """A file whose push still failed after all attempts."""

    file: str
    message: str


@dataclass
class SyncResult:
    """Result of a batch push."""

    files_synced: list[str] = field(default_factory=list)
    files_skipped: list[str] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if every file was pushed or skipped."""
        return len(self.failures) == 0

    @property
    def failure_message(self) -> str:
        """One-line report of every failed file."""
        details = "; ".join(f"{f.file}: {f.message}" for f in self.failures)
        return f"Files failed to push: {details}"


def create_warning_block(github_url: str) -> Block:
    """Callout placed at the top of every pushed page."""
    return {
        "object": "block",
        "type": "callout",
        "callout": {
            "rich_text": markdown_to_rich_text(
                "🔒 This document is synced from GitHub. Direct edits in Notion will be lost. "
                f"Please make changes in the [source file on GitHub]({github_url}). "
                "You can still add comments to discuss this document."
            ),
            "icon": {"type": "emoji", "emoji": "⚠️"},
            "color": "yellow_background",
        },
    }


class SyncEngine:
    """
    Main orchestrator for Markdown → Notion pushes.

    Each file is pushed independently:
    1. Parse frontmatter; skip files that are not sync-managed
    2. Mark the page as syncing
    3. Update GitHub URL, title, status and version properties
    4. Replace the page body with the Markdown content
    5. Mark the page as synced (or as errored if any step failed)
    """

    def __init__(
        self,
        config: Config,
        notion_api: Optional[NotionAPI] = None,
        git_handler: Optional[GitHandler] = None,
    ):
        """
        Initialize sync engine.

        Args:
            config: Configuration instance.
            notion_api: Notion client wrapper. Built from config if omitted.
            git_handler: Git handler. Built from config if omitted.
        """
        self.config = config
        self.notion_api = notion_api or NotionAPI(config)
        self.git_handler = git_handler or GitHandler(config)
        self._sha = config.sha

    @property
    def sha(self) -> str:
        """Commit the GitHub URLs point at."""
        if not self._sha:
            self._sha = self.git_handler.head_sha()
        return self._sha

    def _relative_path(self, file_path: str) -> str:
        path = Path(file_path)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(self.config.repo_root.resolve())
            except ValueError:
                pass
        return path.as_posix()

    async def push_file(self, file_path: str) -> bool:
        """
        Push a single Markdown file to its Notion page.

        Args:
            file_path: Path of the file, relative to the repository root.

        Returns:
            True if the file was pushed, False if it is not sync-managed.

        Raises:
            Exception: Whatever failed. If the page mutation had begun, the
                page's sync status is set to Error first.
        """
        relative_path = self._relative_path(file_path)

        with open(self.config.repo_root / relative_path, encoding="utf-8") as f:
            document = parse_document(f.read(), relative_path)

        if not is_notion_frontmatter(document.data):
            return False

        console.print(f"[cyan]Notion frontmatter found:[/cyan] {relative_path}")
        if self.config.debug:
            console.print(f"[dim]{document.data}[/dim]")

        frontmatter = Frontmatter.from_dict(document.data)
        page_id = resolve_page_id(frontmatter.notion_page)
        github_url = GitHandler.blob_url(self.config.repo_url, self.sha, relative_path)

        names = self.config.properties
        notion = self.notion_api

        try:
            await notion.update_status(page_id, SyncStatus.SYNCING.value, names.sync_status)

            await notion.update_url(page_id, github_url, names.url)

            if frontmatter.title:
                console.print(f"Updating title: {frontmatter.title}")
                await notion.update_title(page_id, frontmatter.title, github_url)

            if frontmatter.status:
                console.print(f"Updating document status: {frontmatter.status}")
                await notion.update_document_status(page_id, str(frontmatter.status), names.status)

            if frontmatter.version_text is not None:
                console.print(f"Updating version: {frontmatter.version_text}")
                await notion.update_version(page_id, frontmatter.version_text, names.version)

            console.print("Clearing page content")
            await notion.clear_children(page_id)

            console.print("Adding markdown content")
            await notion.append_markdown(page_id, document.content, [create_warning_block(github_url)])

            await notion.update_status(page_id, SyncStatus.SYNCED.value, names.sync_status)
        except Exception:
            await notion.update_status(page_id, SyncStatus.ERROR.value, names.sync_status)
            raise

        return True

    async def push_files(self, files: Iterable[str]) -> SyncResult:
        """
        Push files one after another, retrying each independently.

        A failing file never stops the batch; its last error is recorded
        in the result instead.
        """
        result = SyncResult()

        for file_path in files:
            outcome = await retry(partial(self.push_file, file_path), tries=self.config.tries)

            if isinstance(outcome, Failure):
                console.print(f"[red]Failed to push {file_path}: {outcome.message}[/red]")
                result.failures.append(FileFailure(file=file_path, message=outcome.message))
            elif outcome.value:
                console.print(f"[green]Pushed:[/green] {file_path}")
                result.files_synced.append(file_path)
            else:
                result.files_skipped.append(file_path)

        return result

    async def push_changed(self) -> SyncResult:
        """Push every Markdown file changed since the configured base commit."""
        console.print("\n[bold blue]🔄 Starting GitHub → Notion Push[/bold blue]\n")

        files = self.git_handler.get_changed_markdown_files(self.config.base_ref, self.config.sha)
        if not files:
            console.print("[dim]No changed Markdown files[/dim]")

        result = await self.push_files(files)
        self.print_summary(result)
        return result

    def print_summary(self, result: SyncResult) -> None:
        """Print push summary."""
        console.print("\n" + "=" * 50)
        console.print("[bold]Push Summary[/bold]")
        console.print("=" * 50)

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Files pushed", str(len(result.files_synced)))
        table.add_row("Files skipped", str(len(result.files_skipped)))
        table.add_row("Files failed", str(len(result.failures)))
        table.add_row("API requests", str(self.notion_api.request_count))

        console.print(table)

        if result.failures:
            console.print("\n[red]Failed:[/red]")
            for failure in result.failures:
                console.print(f"  {failure.file}: {failure.message}")

        console.print("")
