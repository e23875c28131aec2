"""Feed assembly and RSS rendering."""

from __future__ import annotations

import logging
from typing import Iterable

from .config import SelectorConfig
from .models import Feed, FeedItem
from .templating import get_environment

logger = logging.getLogger(__name__)


def assemble(config: SelectorConfig, items: Iterable[FeedItem]) -> Feed:
    """Combine a request's identity with its synthesised items."""
    return Feed(name=config.name, canonical_url=config.source_url, items=tuple(items))


def render(feed: Feed) -> str:
    """Render the RSS 2.0 document using the Jinja2 template."""
    env = get_environment()
    template = env.get_template("rss.xml.j2")
    logger.debug("Rendering feed %r with %d items", feed.name, len(feed.items))
    return template.render(feed=feed)
