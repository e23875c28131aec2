"""Shared data models for mk_rss."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


class FeedOrder(enum.Enum):
    """Which end of the page holds the most recent item."""

    NORMAL = "normal"
    REVERSED = "reversed"

    @classmethod
    def parse(cls, value: str) -> "FeedOrder":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"{value} is not a valid order (valid orders are 'normal' and 'reversed')"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RawItem:
    """Candidate item scraped from the page, before date synthesis."""

    title: str
    url: str
    raw_date_text: Optional[str] = None


@dataclass(frozen=True)
class FeedItem:
    """Single entry of a generated feed."""

    title: str
    url: str
    published_at: datetime


@dataclass(frozen=True)
class Feed:
    """Generated feed; items are ordered most recent first."""

    name: str
    canonical_url: str
    items: Tuple[FeedItem, ...] = ()
