"""Command-line interface for the mk_rss application."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import build_selector_config, is_absolute_url, load_settings
from .errors import FetchError
from .feed import render
from .models import FeedOrder
from .runner import generate_feed

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Turn an HTML page into an RSS feed using CSS selectors."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional path to the application configuration XML file.",
    )

    # Overrides for logging/debugging
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    parser.add_argument("--name", required=True, help="The name of this feed.")
    parser.add_argument(
        "--url", required=True, help="The URL of the page to scrape for this feed."
    )
    parser.add_argument(
        "--item-selector",
        required=True,
        help="CSS selector matching the HTML nodes that represent a single item.",
    )
    parser.add_argument(
        "--title-selector",
        help="CSS selector, searched within each item, for the node holding the title.",
    )
    parser.add_argument(
        "--link-selector",
        help="CSS selector, searched within each item, for the node with the href.",
    )
    parser.add_argument(
        "--pub-date-selector",
        help="CSS selector, searched within each item, for a human-readable date.",
    )
    parser.add_argument(
        "--order",
        choices=[order.value for order in FeedOrder],
        default=FeedOrder.NORMAL.value,
        help="'normal' treats the top of the page as most recent, 'reversed' the bottom.",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        default=30,
        help="The maximum number of items to return (capped at 30).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "fetch", help="Fetch the page and print the generated RSS XML."
    )
    to_url = subparsers.add_parser(
        "to-rss-url",
        help="Print the HTTP endpoint URL that serves this feed.",
    )
    to_url.add_argument(
        "--lambda-url",
        required=True,
        help="The URL currently hosting the mk-rss HTTP handler.",
    )

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    logger.debug(
        "Logging at %s to %s",
        level_name.upper(),
        log_file or "the console only",
    )


def request_params(args: argparse.Namespace) -> Dict[str, str]:
    """Map parsed arguments onto HTTP handler query parameters."""
    params = {
        "name": args.name,
        "url": args.url,
        "item_selector": args.item_selector,
    }
    if args.title_selector:
        params["title_selector"] = args.title_selector
    if args.link_selector:
        params["link_selector"] = args.link_selector
    if args.pub_date_selector:
        params["pub_date_selector"] = args.pub_date_selector
    params["order"] = args.order
    params["max_items"] = str(args.max_items)
    return params


def build_rss_url(endpoint: str, params: Dict[str, str]) -> str:
    """Append ``params`` to the query string of ``endpoint``."""
    parts = urlsplit(endpoint)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)

        # Determine logging settings (CLI overrides Config)
        log_level = args.log_level or settings.logging.level
        log_file = args.log_file or settings.logging.file
        configure_logging(log_level, log_file)

        config = build_selector_config(
            name=args.name,
            source_url=args.url,
            item_selector=args.item_selector,
            title_selector=args.title_selector,
            link_selector=args.link_selector,
            date_selector=args.pub_date_selector,
            order=args.order,
            max_items=args.max_items,
        )

        if args.command == "to-rss-url":
            if not is_absolute_url(args.lambda_url):
                raise ValueError(f"Could not parse --lambda-url: {args.lambda_url}")
            output = build_rss_url(args.lambda_url, request_params(args))
        else:
            output = render(generate_feed(config, settings=settings))
    except ValueError as exc:
        parser.error(str(exc))
    except (FetchError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    print(output)
    return 0
