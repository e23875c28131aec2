from datetime import datetime, timezone

import pytest

from mk_rss.config import build_selector_config


@pytest.fixture
def now():
    return datetime(2021, 2, 1, 13, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_config():
    def _make(**overrides):
        values = {
            "name": "Test Website",
            "source_url": "https://example.com/feed/",
            "item_selector": ".item",
        }
        values.update(overrides)
        return build_selector_config(**values)

    return _make
