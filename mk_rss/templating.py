"""Jinja2 environment for mk_rss templates."""

from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime
from importlib import resources

from jinja2 import Environment, FileSystemLoader, select_autoescape

_ENV: Environment | None = None


def _rfc2822(value: datetime) -> str:
    """Format a timezone-aware datetime for <pubDate>."""
    return format_datetime(value)


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = resources.files(__package__) / "templates"
        loader = FileSystemLoader(str(template_dir))
        _ENV = Environment(
            loader=loader,
            autoescape=select_autoescape(
                enabled_extensions=("xml", "xml.j2"), default_for_string=True
            ),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        _ENV.filters["rfc2822"] = _rfc2822
    return _ENV
