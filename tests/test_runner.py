import textwrap
from datetime import date, timedelta

import pytest

import mk_rss.runner as runner
from mk_rss.cache import FileCache
from mk_rss.config import AppSettings, CacheSettings
from mk_rss.db import DatabaseCache
from mk_rss.dates import DateStrategy
from mk_rss.errors import FetchError
from mk_rss.runner import build_cache, generate_feed

ROUND_TRIP_PAGE = textwrap.dedent(
    """\
    <!DOCTYPE html>
    <html lang="en-US">
    <body>
        <a class="item" href="item-1">Item 1</a>
        <a class="item" href="item-2">Item 2</a>
    </body>
    """
)

DATED_PAGE = textwrap.dedent(
    """\
    <html><body>
      <div class="item"><a href="/a">A</a><span class="when">10 Jan 2021 09:00</span></div>
      <div class="item"><a href="/b">B</a><span class="when">10 Jan 2021 09:00</span></div>
      <div class="item"><a href="/c">C</a></div>
    </body></html>
    """
)


def _stub_fetch(monkeypatch, body, calls=None):
    def fake_fetch_page(url, **kwargs):
        if calls is not None:
            calls.append((url, kwargs))
        return body

    monkeypatch.setattr(runner, "fetch_page", fake_fetch_page)


def test_generate_feed_round_trip(monkeypatch, make_config, now, tmp_path):
    _stub_fetch(monkeypatch, ROUND_TRIP_PAGE)

    feed = generate_feed(make_config(), now=now, cache=FileCache(str(tmp_path)))

    assert feed.name == "Test Website"
    assert feed.canonical_url == "https://example.com/feed/"
    assert [item.url for item in feed.items] == [
        "https://example.com/feed/item-1",
        "https://example.com/feed/item-2",
    ]
    assert feed.items[0].published_at > feed.items[1].published_at


def test_generate_feed_orders_dated_items(monkeypatch, make_config, now, tmp_path):
    _stub_fetch(monkeypatch, DATED_PAGE)
    config = make_config(link_selector="a", title_selector="a", date_selector=".when")

    feed = generate_feed(config, now=now, cache=FileCache(str(tmp_path)))

    assert [item.title for item in feed.items] == ["A", "B", "C"]
    stamps = [item.published_at for item in feed.items]
    assert stamps[0] - stamps[1] == timedelta(seconds=1)
    assert stamps[1] - stamps[2] == timedelta(seconds=1)


def test_generate_feed_reads_dates_from_item_text(monkeypatch, make_config, now, tmp_path):
    _stub_fetch(
        monkeypatch,
        '<html><body><div class="item"><a href="/x">Jan 10, 2021</a></div></body></html>',
    )
    config = make_config(link_selector="a", date_selector=".missing")

    feed = generate_feed(config, now=now, cache=FileCache(str(tmp_path)))

    assert feed.items[0].published_at.date() == date(2021, 1, 10)


def test_generate_feed_with_no_matches_is_empty(monkeypatch, make_config, now, tmp_path):
    _stub_fetch(monkeypatch, "<html><body><p>Nothing here</p></body></html>")

    feed = generate_feed(make_config(), now=now, cache=FileCache(str(tmp_path)))

    assert feed.items == ()


def test_generate_feed_passes_settings_to_fetch(monkeypatch, make_config, now, tmp_path):
    calls = []
    _stub_fetch(monkeypatch, ROUND_TRIP_PAGE, calls)
    settings = AppSettings()
    settings.cache.max_age_minutes = 5
    settings.http.timeout = 2.5
    settings.http.user_agent = "Agent"
    settings.dates.strategy = DateStrategy.NONE
    cache = FileCache(str(tmp_path))

    feed = generate_feed(make_config(), settings=settings, now=now, cache=cache)

    url, kwargs = calls[0]
    assert url == "https://example.com/feed/"
    assert kwargs["cache"] is cache
    assert kwargs["max_age"] == timedelta(minutes=5)
    assert kwargs["timeout"] == 2.5
    assert kwargs["user_agent"] == "Agent"
    assert feed.items[0].published_at - feed.items[1].published_at == timedelta(hours=1)


def test_generate_feed_propagates_fetch_errors(monkeypatch, make_config, now):
    def failing_fetch(url, **kwargs):
        raise FetchError(url, "503 Server Error", status_code=503)

    monkeypatch.setattr(runner, "fetch_page", failing_fetch)

    with pytest.raises(FetchError):
        generate_feed(make_config(), now=now, settings=AppSettings(cache=CacheSettings(enabled=False)))


def test_build_cache_variants(tmp_path):
    assert build_cache(CacheSettings(enabled=False)) is None

    file_cache = build_cache(CacheSettings(directory=str(tmp_path)))
    assert isinstance(file_cache, FileCache)
    assert file_cache.directory == tmp_path

    db_cache = build_cache(
        CacheSettings(backend="database", connection_string="sqlite:///:memory:")
    )
    assert isinstance(db_cache, DatabaseCache)

    with pytest.raises(ValueError):
        build_cache(CacheSettings(backend="database"))
