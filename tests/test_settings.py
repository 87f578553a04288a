"""Tests for environment-driven settings parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sitemap_builder.config import Settings


def test_settings_parse_comma_separated_lists(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SITEMAP_CONTENT_PROVIDERS", "posts, images")
    monkeypatch.setenv("SITEMAP_TAXONOMIES", "category,,genre")
    monkeypatch.setenv("SITE_URL", "https://blog.example/")

    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./test.sqlite")

    assert settings.SITEMAP_CONTENT_PROVIDERS == ["posts", "images"]
    assert settings.SITEMAP_TAXONOMIES == ["category", "genre"]
    assert settings.SITE_URL == "https://blog.example"


def test_settings_reject_unknown_providers_and_bad_intervals(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SITEMAP_CONTENT_PROVIDERS", "posts,videos")
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite+aiosqlite:///./test.sqlite")

    monkeypatch.delenv("SITEMAP_CONTENT_PROVIDERS")
    with pytest.raises(ValidationError):
        Settings(
            DATABASE_URL="sqlite+aiosqlite:///./test.sqlite",
            SITEMAP_AUTOMATIC_UPDATE_INTERVAL_SECONDS=10,
        )


def test_settings_treat_empty_log_file_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FILE", "")

    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./test.sqlite")

    assert settings.LOG_FILE is None
    assert settings.SITEMAP_GENERATION_INTERVAL_SECONDS == 5
