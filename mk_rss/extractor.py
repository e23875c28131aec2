"""Scrape candidate feed items out of an HTML page."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import Selector, SelectorConfig
from .models import FeedOrder, RawItem

logger = logging.getLogger(__name__)


def resolve_target(item: Tag, selector: Optional[Selector]) -> Tag:
    """Return the first match of ``selector`` inside ``item``, else ``item`` itself."""
    if selector is None:
        return item
    match = selector.pattern.select_one(item)
    return match if match is not None else item


def resolve_link(href: str, base_url: str) -> Optional[str]:
    """Return ``href`` as an absolute URL, or None if it cannot be made one."""
    href = href.strip()
    try:
        if urlsplit(href).scheme:
            return href
        joined = urljoin(base_url, href)
        parts = urlsplit(joined)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return joined


def _scrape_item(config: SelectorConfig, item: Tag) -> Optional[RawItem]:
    title_node = resolve_target(item, config.title_selector)
    title = title_node.get_text().strip()

    link_node = resolve_target(item, config.link_selector)
    href = link_node.get("href")
    if href is None:
        logger.debug("Skipping item without href: %r", title)
        return None

    url = resolve_link(str(href), config.source_url)
    if url is None:
        logger.debug("Skipping item with unresolvable href %r: %r", href, title)
        return None

    date_node = resolve_target(item, config.date_selector)
    return RawItem(
        title=title,
        url=url,
        raw_date_text=date_node.get_text().strip() or None,
    )


def extract(config: SelectorConfig, html_body: str) -> List[RawItem]:
    """Apply ``config`` to ``html_body`` and return items, most recent first."""
    document = BeautifulSoup(html_body, "html.parser")
    matches = config.item_selector.pattern.select(document)

    items: List[RawItem] = []
    for node in matches:
        scraped = _scrape_item(config, node)
        if scraped is not None:
            items.append(scraped)

    if config.order is FeedOrder.REVERSED:
        items.reverse()

    selected = items[: config.max_items]
    logger.info(
        "Extracted %d items from %d matches of %r (kept %d)",
        len(items),
        len(matches),
        config.item_selector.text,
        len(selected),
    )
    return selected
