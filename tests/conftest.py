"""Root pytest configuration for all tests."""

import pytest


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch):
    """Let every Notion request through the throttle so tests never wait."""
    monkeypatch.setattr("notion_push.notion_api._check_rate_limit", lambda: None)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove environment variables that Config.from_env reads."""
    for name in (
        "NOTION_TOKEN",
        "INPUT_NOTION-TOKEN",
        "INPUT_NOTION_TOKEN",
        "GITHUB_EVENT_PATH",
        "GITHUB_SERVER_URL",
        "GITHUB_REPOSITORY",
        "GITHUB_SHA",
        "GITHUB_BASE_REF",
        "GITHUB_ACTIONS",
        "REPO_ROOT",
        "DEBUG",
        "SYNC_TRIES",
        "NOTION_SYNC_STATUS_PROPERTY",
        "NOTION_STATUS_PROPERTY",
        "NOTION_URL_PROPERTY",
        "NOTION_VERSION_PROPERTY",
    ):
        monkeypatch.delenv(name, raising=False)
