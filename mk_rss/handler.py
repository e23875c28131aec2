"""Serverless HTTP entry point (API Gateway / Lambda proxy events)."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

from .config import AppSettings, load_settings, selector_config_from_params
from .errors import MkRssError
from .feed import render
from .runner import generate_feed

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MK_RSS_CONFIG"

_LOGGING_CONFIGURED = False


def _configure_logging(settings: AppSettings) -> None:
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=getattr(logging, settings.logging.level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGING_CONFIGURED = True


def _response(status: int, body: str, content_type: str) -> Dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": content_type},
        "body": body,
    }


def handle_request(
    params: Mapping[str, str], settings: Optional[AppSettings] = None
) -> Dict[str, Any]:
    """Generate the feed described by ``params`` and wrap it in a response."""
    try:
        config = selector_config_from_params(params)
        feed = generate_feed(config, settings=settings)
    except MkRssError as exc:
        logger.warning("Rejected feed request: %s", exc)
        return _response(400, str(exc), "text/plain; charset=utf-8")
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error while generating feed.")
        return _response(500, "Internal error", "text/plain; charset=utf-8")

    return _response(200, render(feed), "application/rss+xml")


def lambda_handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """AWS Lambda entry point."""
    try:
        settings = load_settings(os.environ.get(CONFIG_ENV_VAR))
    except Exception:  # noqa: BLE001
        logger.exception("Failed to load settings from $%s.", CONFIG_ENV_VAR)
        return _response(500, "Internal error", "text/plain; charset=utf-8")
    _configure_logging(settings)
    params = event.get("queryStringParameters") or {}
    return handle_request(params, settings=settings)
