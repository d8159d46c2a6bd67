"""
Configuration management for the Markdown → Notion push.

Loads settings from environment variables (and the GitHub Actions
event payload when present) and provides structured configuration
for all sync components.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_SYNC_STATUS_PROPERTY = "Sync status"
DEFAULT_STATUS_PROPERTY = "Status"
DEFAULT_URL_PROPERTY = "GitHub URL"
DEFAULT_VERSION_PROPERTY = "Version"
DEFAULT_TRIES = 2

# Change discovery base when the run names no earlier commit
DEFAULT_BASE_REF = "HEAD~1"


@dataclass
class PropertyNames:
    """Names of the Notion page properties the sync writes to."""

    sync_status: str = DEFAULT_SYNC_STATUS_PROPERTY
    status: str = DEFAULT_STATUS_PROPERTY
    url: str = DEFAULT_URL_PROPERTY
    version: str = DEFAULT_VERSION_PROPERTY


@dataclass
class Config:
    """
    Central configuration for the push.

    All secrets are loaded from env vars - never hardcoded.
    """

    # Notion settings
    notion_token: str

    # Source repository (for the GitHub URL written to each page)
    repo_url: str
    sha: Optional[str] = None
    base_ref: Optional[str] = None

    # Paths
    repo_root: Path = field(default_factory=lambda: Path.cwd())

    # Sync behavior
    debug: bool = False
    tries: int = DEFAULT_TRIES
    properties: PropertyNames = field(default_factory=PropertyNames)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional path to .env file. If not provided,
                     looks for .env in current directory.

        Returns:
            Configured Config instance.

        Raises:
            ConfigError: If required environment variables are missing.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Actions inputs arrive as INPUT_<NAME>
        notion_token = (
            os.getenv("NOTION_TOKEN")
            or os.getenv("INPUT_NOTION-TOKEN")
            or os.getenv("INPUT_NOTION_TOKEN")
        )
        if not notion_token:
            raise ConfigError(
                "NOTION_TOKEN environment variable is required.\n"
                "Create a Notion integration at https://www.notion.so/my-integrations"
            )

        event = _load_event_payload(os.getenv("GITHUB_EVENT_PATH"))

        repo_url = _repo_url_from_env(event)
        if not repo_url:
            raise ConfigError(
                "Could not determine the repository URL.\n"
                "Set GITHUB_SERVER_URL and GITHUB_REPOSITORY, or run inside GitHub Actions."
            )

        base_ref = event.get("before") or _pull_request_base(os.getenv("GITHUB_BASE_REF")) or DEFAULT_BASE_REF

        repo_root_str = os.getenv("REPO_ROOT")
        repo_root = Path(repo_root_str) if repo_root_str else Path.cwd()

        tries_str = os.getenv("SYNC_TRIES", str(DEFAULT_TRIES))
        try:
            tries = int(tries_str)
        except ValueError:
            raise ConfigError(f"SYNC_TRIES must be an integer, got {tries_str!r}")

        properties = PropertyNames(
            sync_status=os.getenv("NOTION_SYNC_STATUS_PROPERTY", DEFAULT_SYNC_STATUS_PROPERTY),
            status=os.getenv("NOTION_STATUS_PROPERTY", DEFAULT_STATUS_PROPERTY),
            url=os.getenv("NOTION_URL_PROPERTY", DEFAULT_URL_PROPERTY),
            version=os.getenv("NOTION_VERSION_PROPERTY", DEFAULT_VERSION_PROPERTY),
        )

        return cls(
            notion_token=notion_token,
            repo_url=repo_url,
            sha=os.getenv("GITHUB_SHA") or None,
            base_ref=base_ref,
            repo_root=repo_root,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            tries=tries,
            properties=properties,
        )

    @property
    def in_github_actions(self) -> bool:
        """Whether the push runs inside a GitHub Actions job."""
        return os.getenv("GITHUB_ACTIONS", "false").lower() == "true"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.repo_root, str):
            self.repo_root = Path(self.repo_root)

        self.repo_url = self.repo_url.rstrip("/")

        if self.tries < 1:
            raise ConfigError(f"tries must be at least 1, got {self.tries}")


def _load_event_payload(event_path: Optional[str]) -> dict:
    """Read the Actions event payload, or an empty dict outside Actions."""
    if not event_path:
        return {}

    path = Path(event_path)
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Could not parse GitHub event payload {path}: {e}")

    return data if isinstance(data, dict) else {}


def _pull_request_base(branch: Optional[str]) -> Optional[str]:
    """GITHUB_BASE_REF is a branch name; actions/checkout fetches it as a remote ref."""
    if not branch:
        return None
    return f"origin/{branch}"


def _repo_url_from_env(event: dict) -> Optional[str]:
    """Repository web URL from the event payload or GITHUB_* variables."""
    html_url = (event.get("repository") or {}).get("html_url")
    if html_url:
        return html_url

    server_url = os.getenv("GITHUB_SERVER_URL", "https://github.com")
    repository = os.getenv("GITHUB_REPOSITORY")
    if repository:
        return f"{server_url.rstrip('/')}/{repository}"

    return None
