"""Unit tests for notion_push.git_handler module."""

import shutil
import subprocess
from unittest.mock import patch

import pytest

from notion_push.config import DEFAULT_BASE_REF, Config
from notion_push.git_handler import NULL_SHA, GitHandler


def completed(stdout: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr="")


@pytest.fixture
def handler(tmp_path):
    return GitHandler(Config(notion_token="t", repo_url="https://github.com/acme/docs", repo_root=tmp_path))


class TestGetChangedMarkdownFiles:
    """Test cases for GitHandler.get_changed_markdown_files."""

    def test_diff_filters_markdown(self, handler):
        """Only Markdown paths from the diff are returned, in git's order."""
        output = "docs/b.md\0src/app.py\0README.markdown\0notes/A.MD\0"
        with patch.object(handler, "has_commit", return_value=True), \
                patch.object(handler, "_run_git", return_value=completed(output)) as mock_git:
            files = handler.get_changed_markdown_files("base123", "head456")

        assert files == ["docs/b.md", "README.markdown", "notes/A.MD"]
        mock_git.assert_called_once_with("diff", "--name-only", "-z", "--diff-filter=d", "base123", "head456")

    def test_head_defaults_to_head(self, handler):
        """Without a head commit the diff runs against HEAD."""
        with patch.object(handler, "has_commit", return_value=True), \
                patch.object(handler, "_run_git", return_value=completed("")) as mock_git:
            assert handler.get_changed_markdown_files("base123") == []

        assert mock_git.call_args[0][-1] == "HEAD"

    @pytest.mark.parametrize("base", [None, "", NULL_SHA])
    def test_no_base_lists_all_files(self, handler, base):
        """Without a usable base every tracked Markdown file is pushed."""
        with patch.object(handler, "_run_git", return_value=completed("a.md\0b.txt\0")) as mock_git:
            assert handler.get_changed_markdown_files(base) == ["a.md"]

        mock_git.assert_called_once_with("ls-files", "-z")

    def test_unknown_base_lists_all_files(self, handler):
        """A base commit missing from a shallow clone falls back to ls-files."""
        with patch.object(handler, "has_commit", return_value=False), \
                patch.object(handler, "_run_git", return_value=completed("a.md\0")) as mock_git:
            assert handler.get_changed_markdown_files("gone") == ["a.md"]

        mock_git.assert_called_once_with("ls-files", "-z")

    def test_empty_entries_ignored(self, handler):
        """Entries are NUL-separated; empty entries and spaces in names are handled."""
        with patch.object(handler, "has_commit", return_value=True), \
                patch.object(handler, "_run_git", return_value=completed("a b.md\0\0c.md\0")):
            assert handler.get_changed_markdown_files("base123") == ["a b.md", "c.md"]


def git(repo, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), "-c", "user.name=Test", "-c", "user.email=test@example.com",
         "-c", "commit.gpgsign=false", *args],
        capture_output=True,
        text=True,
        encoding="utf-8",
        check=True,
    )
    return result.stdout.strip()


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestChangedFilesInRepository:
    """Change discovery against a real temporary repository."""

    @pytest.fixture
    def repo(self, tmp_path):
        git(tmp_path, "init", "-q")
        (tmp_path / "README.txt").write_text("base\n", encoding="utf-8")
        git(tmp_path, "add", ".")
        git(tmp_path, "commit", "-q", "-m", "base")
        return tmp_path

    def test_non_ascii_names_are_returned(self, repo):
        """Paths outside ASCII come back unquoted and keep their suffix."""
        base = git(repo, "rev-parse", "HEAD")
        (repo / "café.md").write_text("# Café\n", encoding="utf-8")
        (repo / "plain.md").write_text("# Plain\n", encoding="utf-8")
        git(repo, "add", ".")
        git(repo, "commit", "-q", "-m", "docs")

        handler = GitHandler(Config(notion_token="t", repo_url="https://github.com/acme/docs", repo_root=repo))
        files = handler.get_changed_markdown_files(base)

        assert sorted(files) == ["café.md", "plain.md"]

    def test_ls_files_fallback_returns_non_ascii_names(self, repo):
        """The all-files fallback lists the same unquoted paths."""
        (repo / "naïve.md").write_text("# Naïve\n", encoding="utf-8")
        git(repo, "add", ".")
        git(repo, "commit", "-q", "-m", "docs")

        handler = GitHandler(Config(notion_token="t", repo_url="https://github.com/acme/docs", repo_root=repo))

        assert handler.get_changed_markdown_files(NULL_SHA) == ["naïve.md"]

    def test_default_base_is_previous_commit(self, repo):
        """The HEAD~1 default diffs only the latest commit."""
        (repo / "old.md").write_text("# Old\n", encoding="utf-8")
        git(repo, "add", ".")
        git(repo, "commit", "-q", "-m", "old")
        (repo / "new.md").write_text("# New\n", encoding="utf-8")
        git(repo, "add", ".")
        git(repo, "commit", "-q", "-m", "new")

        handler = GitHandler(Config(notion_token="t", repo_url="https://github.com/acme/docs", repo_root=repo))

        assert handler.get_changed_markdown_files(DEFAULT_BASE_REF) == ["new.md"]

    def test_default_base_on_first_commit_lists_all_files(self, tmp_path):
        """With a single commit HEAD~1 does not exist, so every file is pushed."""
        git(tmp_path, "init", "-q")
        (tmp_path / "only.md").write_text("# Only\n", encoding="utf-8")
        git(tmp_path, "add", ".")
        git(tmp_path, "commit", "-q", "-m", "first")

        handler = GitHandler(Config(notion_token="t", repo_url="https://github.com/acme/docs", repo_root=tmp_path))

        assert handler.get_changed_markdown_files(DEFAULT_BASE_REF) == ["only.md"]


class TestGitCommands:
    """Test cases for GitHandler's git wrappers."""

    def test_run_git_targets_repo_root(self, handler, tmp_path):
        """Commands run with -C pointing at the repository root."""
        with patch("notion_push.git_handler.subprocess.run", return_value=completed("x")) as mock_run:
            handler._run_git("status")

        assert mock_run.call_args[0][0] == ["git", "-C", str(tmp_path), "status"]

    def test_head_sha(self, handler):
        with patch.object(handler, "_run_git", return_value=completed("abc123\n")):
            assert handler.head_sha() == "abc123"

    def test_has_commit(self, handler):
        with patch.object(handler, "_run_git", return_value=completed(returncode=1)):
            assert handler.has_commit("nope") is False
        with patch.object(handler, "_run_git", return_value=completed(returncode=0)):
            assert handler.has_commit("abc") is True


class TestBlobUrl:
    """Test cases for GitHandler.blob_url."""

    def test_builds_blob_url(self):
        assert GitHandler.blob_url("https://github.com/acme/docs", "abc123", "docs/a.md") == (
            "https://github.com/acme/docs/blob/abc123/docs/a.md"
        )

    def test_normalises_slashes(self):
        assert GitHandler.blob_url("https://github.com/acme/docs/", "abc", "/a.md") == (
            "https://github.com/acme/docs/blob/abc/a.md"
        )
