import os
import time
import types
from datetime import timedelta

import pytest
import requests

import mk_rss.fetch as fetch
from mk_rss.cache import FileCache, cache_key
from mk_rss.errors import FetchError

URL = "https://example.com/feed/"
THIRTY_MINUTES = timedelta(minutes=30)


def _age_file(path, minutes):
    stamp = time.time() - minutes * 60
    os.utime(path, (stamp, stamp))


def test_cache_key_is_stable_and_url_specific():
    assert cache_key(URL) == cache_key(URL)
    assert cache_key(URL) != cache_key(URL + "other")
    assert len(cache_key(URL)) == 64


def test_file_cache_round_trip(tmp_path):
    cache = FileCache(str(tmp_path))
    cache.put("abc", "<html>body</html>")

    assert cache.path_for("abc") == tmp_path / "mk-rss-abc"
    assert cache.get("abc", THIRTY_MINUTES) == "<html>body</html>"


def test_file_cache_ignores_stale_entries(tmp_path):
    cache = FileCache(str(tmp_path))
    cache.put("abc", "old body")
    _age_file(cache.path_for("abc"), 31)

    assert cache.get("abc", THIRTY_MINUTES) is None


def test_file_cache_missing_entry(tmp_path):
    assert FileCache(str(tmp_path)).get("missing", THIRTY_MINUTES) is None


def test_file_cache_failed_put_keeps_previous_entry(tmp_path):
    cache = FileCache(str(tmp_path))
    cache.put("abc", "<html>full body</html>")

    with pytest.raises(UnicodeEncodeError):
        cache.put("abc", "<html>new \ud800 body</html>")

    assert cache.get("abc", THIRTY_MINUTES) == "<html>full body</html>"
    assert list(tmp_path.iterdir()) == [cache.path_for("abc")]


def test_file_cache_unreadable_entry_is_a_miss(tmp_path, caplog):
    cache = FileCache(str(tmp_path))
    cache.path_for("abc").mkdir()

    assert cache.get("abc", THIRTY_MINUTES) is None
    assert "Ignoring unreadable cache entry" in caplog.text


def test_fetch_page_serves_fresh_cache_without_origin(monkeypatch, tmp_path):
    cache = FileCache(str(tmp_path))
    cache.put(cache_key(URL), "cached body")
    _age_file(cache.path_for(cache_key(URL)), 29)

    def fail(*args, **kwargs):
        raise AssertionError("origin should not be contacted")

    monkeypatch.setattr(fetch, "fetch_from_web", fail)

    assert fetch.fetch_page(URL, cache=cache) == "cached body"


def test_fetch_page_refreshes_stale_cache(monkeypatch, tmp_path):
    cache = FileCache(str(tmp_path))
    path = cache.path_for(cache_key(URL))
    cache.put(cache_key(URL), "stale body")
    _age_file(path, 31)

    calls = []

    def fake_fetch(url, **kwargs):
        calls.append(url)
        return "fresh body"

    monkeypatch.setattr(fetch, "fetch_from_web", fake_fetch)

    assert fetch.fetch_page(URL, cache=cache) == "fresh body"
    assert calls == [URL]
    assert path.read_text(encoding="utf-8") == "fresh body"
    assert time.time() - path.stat().st_mtime < 60


def test_fetch_page_has_no_stale_fallback(monkeypatch, tmp_path):
    cache = FileCache(str(tmp_path))
    cache.put(cache_key(URL), "stale body")
    _age_file(cache.path_for(cache_key(URL)), 45)

    def failing_fetch(url, **kwargs):
        raise FetchError(url, "connection refused")

    monkeypatch.setattr(fetch, "fetch_from_web", failing_fetch)

    with pytest.raises(FetchError):
        fetch.fetch_page(URL, cache=cache)


def test_fetch_page_survives_cache_write_failure(monkeypatch, caplog):
    class BrokenCache:
        def get(self, key, max_age):
            return None

        def put(self, key, value):
            raise OSError("disk full")

    monkeypatch.setattr(fetch, "fetch_from_web", lambda url, **kwargs: "body")

    assert fetch.fetch_page(URL, cache=BrokenCache()) == "body"
    assert "Failed to write cache entry" in caplog.text


def test_fetch_page_without_cache(monkeypatch):
    monkeypatch.setattr(fetch, "fetch_from_web", lambda url, **kwargs: "body")

    assert fetch.fetch_page(URL) == "body"


def _session(response=None, error=None, captured=None):
    def get(url, headers=None, timeout=None):
        if captured is not None:
            captured.update(url=url, headers=headers, timeout=timeout)
        if error is not None:
            raise error
        return response

    return types.SimpleNamespace(get=get)


def test_fetch_from_web_sends_browser_user_agent():
    captured = {}
    response = types.SimpleNamespace(text="<html/>", raise_for_status=lambda: None)

    body = fetch.fetch_from_web(
        URL, timeout=4.0, session=_session(response, captured=captured)
    )

    assert body == "<html/>"
    assert captured["url"] == URL
    assert captured["headers"]["User-Agent"].startswith("Mozilla/5.0")
    assert captured["timeout"] == 4.0


def test_fetch_from_web_wraps_http_errors():
    def raise_for_status():
        raise requests.HTTPError(
            "404 Client Error", response=types.SimpleNamespace(status_code=404)
        )

    response = types.SimpleNamespace(text="", raise_for_status=raise_for_status)

    with pytest.raises(FetchError) as excinfo:
        fetch.fetch_from_web(URL, session=_session(response))

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == URL


def test_fetch_from_web_wraps_transport_errors():
    session = _session(error=requests.ConnectionError("connection refused"))

    with pytest.raises(FetchError, match="connection refused"):
        fetch.fetch_from_web(URL, session=session)
