"""Generate RSS feeds from ordinary HTML pages."""

from .config import SelectorConfig, build_selector_config
from .errors import ConfigError, FetchError, MkRssError
from .feed import render
from .models import Feed, FeedItem, FeedOrder
from .runner import generate_feed

__all__ = [
    "ConfigError",
    "Feed",
    "FeedItem",
    "FeedOrder",
    "FetchError",
    "MkRssError",
    "SelectorConfig",
    "build_selector_config",
    "generate_feed",
    "render",
]
