"""
Git operations for the push.

Handles:
- Discovery of Markdown files changed between two commits
- Resolving the current commit
- Building GitHub blob URLs for pushed files
"""

import subprocess
from pathlib import Path, PurePath
from typing import Optional

from rich.console import Console

from .config import Config

console = Console()

# Pushes that create a branch report this as the "before" commit
NULL_SHA = "0" * 40

MARKDOWN_SUFFIXES = {".md", ".markdown"}


class GitHandler:
    """Handles git interactions for change discovery."""

    def __init__(self, config: Config):
        """
        Initialize git handler.

        Args:
            config: Configuration instance.
        """
        self.config = config
        self.repo_root = config.repo_root

    def _run_git(
        self,
        *args: str,
        capture_output: bool = True,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run a git command."""
        cmd = ["git", "-C", str(self.repo_root)] + list(args)

        if self.config.debug:
            console.print(f"[dim]Running: {' '.join(cmd)}[/dim]")

        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=True,
            encoding="utf-8",
            check=check,
        )

    def head_sha(self) -> str:
        """Get the commit currently checked out."""
        result = self._run_git("rev-parse", "HEAD")
        return result.stdout.strip()

    def has_commit(self, ref: str) -> bool:
        """Check whether ref names a commit known to this repository."""
        result = self._run_git("cat-file", "-e", f"{ref}^{{commit}}", check=False)
        return result.returncode == 0

    def get_changed_markdown_files(self, base: Optional[str], head: Optional[str] = None) -> list[str]:
        """
        List Markdown files added or modified between two commits.

        Falls back to every tracked Markdown file when the base commit is
        unknown (first push of a branch, shallow clone without history).

        Args:
            base: Commit the changes are measured from.
            head: Commit the changes are measured to. Defaults to HEAD.

        Returns:
            Repository-relative POSIX paths, in git's order.
        """
        head = head or "HEAD"

        if not base or base == NULL_SHA or not self.has_commit(base):
            console.print("[dim]No base commit available, pushing all Markdown files[/dim]")
            result = self._run_git("ls-files", "-z")
        else:
            # Deleted files have nothing left to push
            result = self._run_git("diff", "--name-only", "-z", "--diff-filter=d", base, head)

        # -z keeps non-ASCII paths unquoted
        return [
            path
            for path in result.stdout.split("\0")
            if path and PurePath(path).suffix.lower() in MARKDOWN_SUFFIXES
        ]

    @staticmethod
    def blob_url(repo_url: str, sha: str, path: str) -> str:
        """
        Build the GitHub web URL of a file at a commit.

        Example:
            ("https://github.com/o/r", "abc123", "docs/a.md")
                -> "https://github.com/o/r/blob/abc123/docs/a.md"
        """
        return f"{repo_url.rstrip('/')}/blob/{sha}/{Path(path).as_posix().lstrip('/')}"
