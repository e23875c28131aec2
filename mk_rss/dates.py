"""Publication date parsing and synthesis.

Feed readers order entries by ``pubDate``, while scraped pages frequently
carry no dates, duplicated dates, or dates that disagree with the order the
items are shown in. :func:`synthesize` turns whatever the page offered into a
complete sequence of timestamps that is strictly decreasing in extraction
order.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import dateparser

from .models import FeedItem, RawItem

logger = logging.getLogger(__name__)

REPAIR_STEP = timedelta(seconds=1)
UNDATED_STEP = timedelta(hours=1)
# Parsed dates before this are discarded.
EARLIEST_DATE = datetime(1900, 1, 1, tzinfo=timezone.utc)


class DateStrategy(enum.Enum):
    """How raw date text is turned into timestamps."""

    NATURAL = "natural"
    NONE = "none"

    @classmethod
    def parse(cls, value: str) -> "DateStrategy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"{value} is not a valid date strategy (use 'natural' or 'none')"
            ) from None


class Dialect(enum.Enum):
    """Regional convention for ambiguous numeric dates."""

    UK = "uk"
    US = "us"

    @classmethod
    def parse(cls, value: str) -> "Dialect":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"{value} is not a valid dialect (use 'uk' or 'us')"
            ) from None

    @property
    def date_order(self) -> str:
        return "DMY" if self is Dialect.UK else "MDY"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def parse_human_date(
    text: Optional[str], now: datetime, dialect: Dialect = Dialect.UK
) -> Optional[datetime]:
    """Parse a human readable date such as "3 days ago" or "Jan 10, 2021".

    Relative expressions are anchored at ``now``. Returns ``None`` when the
    text is empty, cannot be understood, or lands before :data:`EARLIEST_DATE`.
    """
    if not text or not text.strip():
        return None

    base = _as_utc(now)
    settings = {
        "RELATIVE_BASE": base.replace(tzinfo=None),
        "DATE_ORDER": dialect.date_order,
        "PREFER_DATES_FROM": "past",
        "TIMEZONE": "UTC",
        "TO_TIMEZONE": "UTC",
        "RETURN_AS_TIMEZONE_AWARE": True,
    }
    try:
        parsed = dateparser.parse(text.strip(), languages=["en"], settings=settings)
        if parsed is not None:
            parsed = _as_utc(parsed)
    except (ValueError, OverflowError) as exc:
        logger.debug("Date parser rejected %r: %s", text, exc)
        return None

    if parsed is None:
        logger.debug("Could not parse date text %r", text)
        return None

    if parsed < EARLIEST_DATE:
        logger.debug("Ignoring implausible date %s parsed from %r", parsed, text)
        return None
    return parsed


def _inherit_missing(dates: Sequence[Optional[datetime]], now: datetime) -> List[datetime]:
    previous = dates[0] if dates and dates[0] is not None else now
    filled: List[datetime] = []
    for value in dates:
        current = value if value is not None else previous
        filled.append(current)
        previous = current
    return filled


def repair_monotonicity(timestamps: Sequence[datetime]) -> List[datetime]:
    """Force ``timestamps`` into strictly descending order.

    Any value that is not strictly older than its (already repaired)
    predecessor is replaced by the predecessor minus one second.
    """
    if not timestamps:
        return []

    repaired = [timestamps[0]]
    for value in timestamps[1:]:
        previous = repaired[-1]
        if value >= previous:
            value = previous - REPAIR_STEP
        repaired.append(value)
    return repaired


def _spread_undated(count: int, now: datetime) -> List[datetime]:
    return [now - UNDATED_STEP * index for index in range(count)]


def synthesize(
    items: Sequence[RawItem],
    now: datetime,
    strategy: DateStrategy = DateStrategy.NATURAL,
    dialect: Dialect = Dialect.UK,
) -> List[FeedItem]:
    """Give every item a publication timestamp, strictly decreasing in order."""
    now = _as_utc(now)

    if strategy is DateStrategy.NATURAL:
        dates = [parse_human_date(item.raw_date_text, now, dialect) for item in items]
    elif strategy is DateStrategy.NONE:
        dates = [None] * len(items)
    else:  # pragma: no cover - exhaustive over DateStrategy
        raise ValueError(f"Unsupported date strategy: {strategy}")

    parsed_count = sum(1 for value in dates if value is not None)
    if parsed_count == 0:
        timestamps = _spread_undated(len(items), now)
    else:
        timestamps = repair_monotonicity(_inherit_missing(dates, now))

    logger.debug(
        "Synthesised %d timestamps (%d parsed from page)", len(timestamps), parsed_count
    )
    return [
        FeedItem(title=item.title, url=item.url, published_at=published_at)
        for item, published_at in zip(items, timestamps)
    ]
