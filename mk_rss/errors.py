"""Exception types raised by the feed pipeline."""

from __future__ import annotations

from typing import Optional


class MkRssError(Exception):
    """Base class for all errors surfaced to front ends."""


class ConfigError(MkRssError, ValueError):
    """The feed request is incomplete or invalid."""


class MissingParameter(ConfigError):
    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is required")
        self.name = name


class InvalidParameter(ConfigError):
    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class InvalidSelector(ConfigError):
    """A selector string did not compile."""

    def __init__(self, field_name: str, selector: str, reason: str = "") -> None:
        message = f"Could not parse {field_name}: {selector!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.field_name = field_name
        self.selector = selector


class InvalidUrl(ConfigError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Could not parse URL: {url!r}")
        self.url = url


class FetchError(MkRssError, RuntimeError):
    """The origin page could not be retrieved."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status_code = status_code
