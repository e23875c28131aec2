"""Feed request validation and application settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import urlsplit
from xml.etree import ElementTree as ET

import soupsieve
from soupsieve import SoupSieve

from .dates import DateStrategy, Dialect
from .errors import InvalidParameter, InvalidSelector, InvalidUrl, MissingParameter
from .fetch import BROWSER_USER_AGENT
from .models import FeedOrder

logger = logging.getLogger(__name__)

MAX_ITEMS_LIMIT = 30


@dataclass(frozen=True)
class Selector:
    """A compiled CSS selector that remembers its source text."""

    text: str
    pattern: SoupSieve = field(compare=False, repr=False)

    @classmethod
    def compile(cls, text: str, field_name: str) -> "Selector":
        try:
            pattern = soupsieve.compile(text)
        except soupsieve.SelectorSyntaxError as exc:
            raise InvalidSelector(field_name, text, str(exc).split("\n", 1)[0]) from exc
        return cls(text=text, pattern=pattern)


@dataclass(frozen=True)
class SelectorConfig:
    """Where on a page the feed items live, and how many to keep."""

    name: str
    source_url: str
    item_selector: Selector
    title_selector: Optional[Selector] = None
    link_selector: Optional[Selector] = None
    date_selector: Optional[Selector] = None
    order: FeedOrder = FeedOrder.NORMAL
    max_items: int = MAX_ITEMS_LIMIT


def is_absolute_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _optional_selector(text: Optional[str], field_name: str) -> Optional[Selector]:
    if text is None or not text.strip():
        return None
    return Selector.compile(text, field_name)


def _coerce_order(order: Union[FeedOrder, str, None]) -> FeedOrder:
    if order is None:
        return FeedOrder.NORMAL
    if isinstance(order, FeedOrder):
        return order
    try:
        return FeedOrder.parse(order)
    except ValueError as exc:
        raise InvalidParameter("order", str(exc)) from exc


def build_selector_config(
    name: str,
    source_url: str,
    item_selector: str,
    title_selector: Optional[str] = None,
    link_selector: Optional[str] = None,
    date_selector: Optional[str] = None,
    order: Union[FeedOrder, str, None] = None,
    max_items: Optional[int] = None,
) -> SelectorConfig:
    """Validate raw request values and return an immutable SelectorConfig."""
    if not name:
        raise MissingParameter("name")
    if not source_url:
        raise MissingParameter("url")
    if not item_selector or not item_selector.strip():
        raise MissingParameter("item_selector")

    if not is_absolute_url(source_url):
        raise InvalidUrl(source_url)

    requested = MAX_ITEMS_LIMIT if max_items is None else max_items
    clamped = min(max(requested, 0), MAX_ITEMS_LIMIT)
    if clamped != requested:
        logger.debug("Clamped max_items from %d to %d", requested, clamped)

    return SelectorConfig(
        name=name,
        source_url=source_url,
        item_selector=Selector.compile(item_selector, "item_selector"),
        title_selector=_optional_selector(title_selector, "title_selector"),
        link_selector=_optional_selector(link_selector, "link_selector"),
        date_selector=_optional_selector(date_selector, "pub_date_selector"),
        order=_coerce_order(order),
        max_items=clamped,
    )


def selector_config_from_params(params: Mapping[str, str]) -> SelectorConfig:
    """Build a SelectorConfig from front-end request parameters."""

    def required(key: str) -> str:
        value = params.get(key)
        if not value:
            raise MissingParameter(key)
        return value

    name = required("name")
    url = required("url")
    item_selector = required("item_selector")

    max_items: Optional[int] = None
    raw_max_items = params.get("max_items")
    if raw_max_items not in (None, ""):
        try:
            max_items = int(raw_max_items)
        except ValueError:
            raise InvalidParameter("max_items", "max_items must be a number") from None

    return build_selector_config(
        name=name,
        source_url=url,
        item_selector=item_selector,
        title_selector=params.get("title_selector"),
        link_selector=params.get("link_selector"),
        date_selector=params.get("pub_date_selector"),
        order=params.get("order") or None,
        max_items=max_items,
    )


@dataclass
class CacheSettings:
    enabled: bool = True
    backend: str = "file"
    directory: Optional[str] = None
    connection_string: Optional[str] = None
    max_age_minutes: float = 30.0


@dataclass
class HttpSettings:
    timeout: float = 10.0
    user_agent: str = BROWSER_USER_AGENT


@dataclass
class DateSettings:
    strategy: DateStrategy = DateStrategy.NATURAL
    dialect: Dialect = Dialect.UK


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppSettings:
    cache: CacheSettings = field(default_factory=CacheSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    dates: DateSettings = field(default_factory=DateSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def parse_app_config(path: str) -> AppSettings:
    """Parse the application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    settings = AppSettings()

    # Cache
    cache_node = root.find("cache")
    if cache_node is not None:
        settings.cache.enabled = _parse_bool(cache_node.findtext("enabled", "true"))
        backend = cache_node.findtext("backend", "file").strip().lower()
        if backend not in ("file", "database"):
            raise ValueError(f"Unsupported cache backend: {backend}")
        settings.cache.backend = backend
        directory = cache_node.findtext("directory")
        if directory:
            settings.cache.directory = _resolve_path(config_path, directory.strip())
        connection_string = cache_node.findtext("connection-string")
        if connection_string:
            settings.cache.connection_string = connection_string.strip()
        settings.cache.max_age_minutes = float(
            cache_node.findtext("max-age-minutes", "30")
        )
        if backend == "database" and not settings.cache.connection_string:
            raise ValueError("Database cache requires <connection-string>")

    # HTTP
    http_node = root.find("http")
    if http_node is not None:
        settings.http.timeout = float(http_node.findtext("timeout", "10"))
        user_agent = http_node.findtext("user-agent")
        if user_agent:
            settings.http.user_agent = user_agent.strip()

    # Dates
    dates_node = root.find("dates")
    if dates_node is not None:
        settings.dates.strategy = DateStrategy.parse(
            dates_node.findtext("strategy", "natural")
        )
        settings.dates.dialect = Dialect.parse(dates_node.findtext("dialect", "uk"))

    # Logging
    log_node = root.find("logging")
    if log_node is not None:
        settings.logging.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            settings.logging.file = _resolve_path(config_path, log_file)

    return settings


def load_settings(path: Optional[str]) -> AppSettings:
    """Return settings from ``path``, or the defaults when no file is given."""
    if not path:
        return AppSettings()
    return parse_app_config(path)
