"""Pytest configuration and shared fixtures for tests."""

import pytest

from zettel_tags.common.config_loader import ExtractorSettings, clear_config_cache
from zettel_tags.engine.tag_index import TagIndex


class RecordingSink(TagIndex):
    """TagIndex that also records every attach_field call."""

    def __init__(self, source: str = ""):
        super().__init__(source)
        self.attached: list[tuple[int, str, str]] = []

    def attach_field(self, handle, field_name, value):
        self.attached.append((handle, field_name, value))
        super().attach_field(handle, field_name, value)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep ZETTEL_* env vars and cached settings from leaking between tests."""
    for key in (
        "ZETTEL_SETTINGS_PATH",
        "ZETTEL_SCHEMA",
        "ZETTEL_SCHEMAS_DIR",
        "ZETTEL_TITLE_PREFIX",
        "ZETTEL_KEYWORD_PREFIX",
        "ZETTEL_SUMMARY_FORMAT",
        "ZETTEL_ENABLED_FIELDS",
        "ZETTEL_FOLGEZETTEL",
    ):
        monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def settings():
    return ExtractorSettings()


@pytest.fixture
def index():
    return TagIndex(source="note.md")


@pytest.fixture
def recording_sink():
    return RecordingSink(source="note.md")
