"""High-level orchestration for a single feed request."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .cache import CacheBackend, FileCache
from .config import AppSettings, CacheSettings, SelectorConfig
from .dates import synthesize
from .db import DatabaseCache
from .extractor import extract
from .feed import assemble
from .fetch import fetch_page
from .models import Feed

logger = logging.getLogger(__name__)


def build_cache(settings: CacheSettings) -> Optional[CacheBackend]:
    """Return the cache backend selected by ``settings``, or None if disabled."""
    if not settings.enabled:
        logger.info("Page cache disabled")
        return None
    if settings.backend == "database":
        if not settings.connection_string:
            raise ValueError("Database cache requires a connection string.")
        return DatabaseCache.from_connection_string(settings.connection_string)
    return FileCache(settings.directory)


def generate_feed(
    config: SelectorConfig,
    *,
    settings: Optional[AppSettings] = None,
    now: Optional[datetime] = None,
    cache: Optional[CacheBackend] = None,
) -> Feed:
    """Fetch the configured page and turn it into a Feed.

    ``cache`` overrides the backend chosen by ``settings``. Raises FetchError
    when the origin cannot be retrieved.
    """
    settings = settings or AppSettings()
    if cache is None:
        cache = build_cache(settings.cache)
    now = now or datetime.now(timezone.utc)

    body = fetch_page(
        config.source_url,
        cache=cache,
        max_age=timedelta(minutes=settings.cache.max_age_minutes),
        timeout=settings.http.timeout,
        user_agent=settings.http.user_agent,
    )

    raw_items = extract(config, body)
    items = synthesize(
        raw_items,
        now,
        strategy=settings.dates.strategy,
        dialect=settings.dates.dialect,
    )

    feed = assemble(config, items)
    logger.info("Generated feed '%s' with %d items", feed.name, len(feed.items))
    return feed
