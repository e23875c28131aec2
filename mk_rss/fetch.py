"""Page retrieval through the cache."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

import requests

from .cache import DEFAULT_MAX_AGE, CacheBackend, cache_key
from .errors import FetchError

logger = logging.getLogger(__name__)

# Some sites refuse clients that don't look like a browser.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


def fetch_from_web(
    url: str,
    timeout: float = 10.0,
    user_agent: str = BROWSER_USER_AGENT,
    session: Optional[requests.Session] = None,
) -> str:
    """GET ``url`` and return the decoded body, raising FetchError on failure."""
    logger.info("Fetching %s", url)
    client = session or requests
    try:
        response = client.get(url, headers={"User-Agent": user_agent}, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        raise FetchError(url, str(exc), status_code=status) from exc
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc
    return response.text


def fetch_page(
    url: str,
    cache: Optional[CacheBackend] = None,
    max_age: timedelta = DEFAULT_MAX_AGE,
    timeout: float = 10.0,
    user_agent: str = BROWSER_USER_AGENT,
    session: Optional[requests.Session] = None,
) -> str:
    """Return the body of ``url``, served from ``cache`` while it is fresh."""
    key = cache_key(url)

    if cache is not None:
        cached = cache.get(key, max_age)
        if cached is not None:
            logger.info("Cache hit for %s", url)
            return cached

    body = fetch_from_web(url, timeout=timeout, user_agent=user_agent, session=session)

    if cache is not None:
        try:
            cache.put(key, body)
        except Exception as exc:  # noqa: BLE001 - cache writes never fail a request
            logger.warning("Failed to write cache entry for %s: %s", url, exc)
    return body
