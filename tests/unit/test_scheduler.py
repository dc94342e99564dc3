"""Tests for the ingestion scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import RSS_FEED, rss_with_items

from feedhub.db import IndexedStore
from feedhub.errors import FeedNotFoundError, FeedTimeoutError, HttpError
from feedhub.ingestion import parse_feed
from feedhub.pipeline import IngestionScheduler
from feedhub.pipeline.scheduler import DEFAULT_INTERVAL_SECONDS

FEED_URL = "http://example.com/feed.xml"


def fake_client(responses):
    """Client whose fetch answers from a URL -> feed-or-exception map."""
    client = MagicMock()

    async def fetch(url):
        response = responses[url]
        if isinstance(response, Exception):
            raise response
        return response

    client.fetch = AsyncMock(side_effect=fetch)
    return client


@pytest.fixture
def feed(store: IndexedStore):
    created, _ = store.create_feed(FEED_URL, "Stored title", "Stored description")
    return created


class TestUpdateFeed:
    """Test single-feed ingestion."""

    @pytest.mark.asyncio
    async def test_new_entries_stored(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(RSS_FEED)}))

        result = await scheduler.update_feed(feed.id)

        assert result.success is True
        assert result.new_articles == 2
        assert {a.guid for a in store.list_articles_by_feed(feed.id)} == {"g1", "g2"}

    @pytest.mark.asyncio
    async def test_reingest_adds_nothing(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(RSS_FEED)}))

        await scheduler.update_feed(feed.id)
        result = await scheduler.update_feed(feed.id)

        assert result.new_articles == 0
        assert len(store.list_articles_by_feed(feed.id)) == 2

    @pytest.mark.asyncio
    async def test_known_guid_with_changed_title_is_not_duplicated(self, store, feed):
        first = parse_feed(rss_with_items("<title>Original</title><link>http://example.com/1</link><guid>g1</guid>"))
        second = parse_feed(
            rss_with_items(
                "<title>Retitled</title><link>http://example.com/1</link><guid>g1</guid>",
                "<title>Fresh</title><link>http://example.com/2</link><guid>g2</guid>",
            )
        )
        responses = {FEED_URL: first}
        scheduler = IngestionScheduler(store, fake_client(responses))

        await scheduler.update_feed(feed.id)
        responses[FEED_URL] = second
        result = await scheduler.update_feed(feed.id)

        assert result.new_articles == 1
        assert store.get_article_by_guid(feed.id, "g1").title == "Original"
        assert len(store.list_articles_by_feed(feed.id)) == 2

    @pytest.mark.asyncio
    async def test_metadata_refreshed(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(RSS_FEED)}))

        await scheduler.update_feed(feed.id)

        updated = store.get_feed(feed.id)
        assert updated.title == "Example Blog"
        assert updated.description == "Posts from the example blog"
        assert updated.last_fetched is not None
        assert store.get_feed_by_url(FEED_URL).title == "Example Blog"

    @pytest.mark.asyncio
    async def test_blank_metadata_keeps_stored_values(self, store, feed):
        raw = b'<rss version="2.0"><channel><item><title>A</title><link>http://e.com/a</link></item></channel></rss>'
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(raw)}))

        await scheduler.update_feed(feed.id)

        updated = store.get_feed(feed.id)
        assert updated.title == "Stored title"
        assert updated.description == "Stored description"
        assert updated.last_fetched is not None

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_feed_untouched(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: HttpError("HTTP 500", 500)}))

        with pytest.raises(HttpError):
            await scheduler.update_feed(feed.id)

        unchanged = store.get_feed(feed.id)
        assert unchanged.title == "Stored title"
        assert unchanged.last_fetched is None
        assert store.list_articles_by_feed(feed.id) == []

    @pytest.mark.asyncio
    async def test_unknown_feed(self, store):
        scheduler = IngestionScheduler(store, fake_client({}))

        with pytest.raises(FeedNotFoundError):
            await scheduler.update_feed("missing")

    @pytest.mark.asyncio
    async def test_concurrent_updates_do_not_duplicate(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(RSS_FEED)}))

        results = await asyncio.gather(*(scheduler.update_feed(feed.id) for _ in range(5)))

        assert sum(r.new_articles for r in results) == 2
        assert len(store.list_articles_by_feed(feed.id)) == 2

    @pytest.mark.asyncio
    async def test_import_entries_uses_snapshot(self, store, feed):
        client = fake_client({})
        scheduler = IngestionScheduler(store, client)

        result = await scheduler.import_entries(feed.id, parse_feed(RSS_FEED))

        assert result.new_articles == 2
        client.fetch.assert_not_called()


class TestRunPass:
    """Test passes over all feeds."""

    @pytest.mark.asyncio
    async def test_failure_isolated_and_remaining_feeds_processed(self, store):
        urls = [f"http://site{i}.example.com/rss" for i in range(3)]
        feeds = [store.create_feed(url, f"Site {i}")[0] for i, url in enumerate(urls)]
        responses = {
            urls[0]: parse_feed(rss_with_items("<title>A</title><link>http://site0.example.com/a</link>")),
            urls[1]: FeedTimeoutError("Timed out fetching feed"),
            urls[2]: parse_feed(rss_with_items("<title>C</title><link>http://site2.example.com/c</link>")),
        }
        scheduler = IngestionScheduler(store, fake_client(responses), feed_delay_seconds=0)

        result = await scheduler.run_pass()

        assert len(result.results) == 3
        assert result.new_articles == 2
        assert [r.feed_url for r in result.failed] == [urls[1]]
        assert result.failed[0].error_kind == "timeout"
        assert len(store.list_articles_by_feed(feeds[2].id)) == 1
        assert store.get_feed(feeds[1].id).last_fetched is None
        assert scheduler.last_pass is result

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self, store):
        urls = ["http://a.example.com/rss", "http://b.example.com/rss"]
        for url in urls:
            store.create_feed(url, url)
        responses = {urls[0]: RuntimeError("boom"), urls[1]: parse_feed(RSS_FEED)}
        scheduler = IngestionScheduler(store, fake_client(responses), feed_delay_seconds=0)

        result = await scheduler.run_pass()

        assert result.new_articles == 2
        assert [r.error_kind for r in result.failed] == ["unexpected"]

    @pytest.mark.asyncio
    async def test_delay_between_feeds(self, store):
        urls = [f"http://site{i}.example.com/rss" for i in range(3)]
        for url in urls:
            store.create_feed(url, url)
        scheduler = IngestionScheduler(
            store,
            fake_client({url: parse_feed(RSS_FEED) for url in urls}),
            feed_delay_seconds=1.0,
        )

        with patch("feedhub.pipeline.scheduler.asyncio.sleep", new=AsyncMock()) as sleep:
            await scheduler.run_pass()

        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        result = await IngestionScheduler(store, fake_client({})).run_pass()

        assert result.results == []
        assert result.new_articles == 0


class TestLifecycle:
    """Test start, stop and status."""

    def test_default_interval(self, store):
        scheduler = IngestionScheduler(store, fake_client({}))

        assert DEFAULT_INTERVAL_SECONDS == 1800
        assert scheduler.status().interval_ms == 1800000
        assert scheduler.status().running is False

    @pytest.mark.asyncio
    async def test_start_runs_immediately_and_stop_ends_loop(self, store, feed):
        scheduler = IngestionScheduler(store, fake_client({FEED_URL: parse_feed(RSS_FEED)}), interval_seconds=3600)

        scheduler.start()
        assert scheduler.status().running is True
        for _ in range(50):
            if scheduler.last_pass is not None:
                break
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

        assert scheduler.status().running is False
        assert scheduler.last_pass is not None
        assert len(store.list_articles_by_feed(feed.id)) == 2

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, store):
        scheduler = IngestionScheduler(store, fake_client({}), interval_seconds=3600)

        scheduler.stop()
        scheduler.start()
        first_task = scheduler._task
        scheduler.start()

        assert scheduler._task is first_task

        scheduler.stop()
        scheduler.stop()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_pass_finish(self, store, feed):
        started = asyncio.Event()
        release = asyncio.Event()
        client = MagicMock()

        async def slow_fetch(url):
            started.set()
            await release.wait()
            return parse_feed(RSS_FEED)

        client.fetch = AsyncMock(side_effect=slow_fetch)
        scheduler = IngestionScheduler(store, client, interval_seconds=3600)

        scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        scheduler.stop()
        release.set()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

        assert len(store.list_articles_by_feed(feed.id)) == 2
        assert client.fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_restart_during_in_flight_pass_waits_for_it(self, store, feed):
        started = asyncio.Event()
        release = asyncio.Event()
        in_flight = 0
        overlapped = False
        client = MagicMock()

        async def slow_fetch(url):
            nonlocal in_flight, overlapped
            in_flight += 1
            overlapped = overlapped or in_flight > 1
            started.set()
            await release.wait()
            in_flight -= 1
            return parse_feed(RSS_FEED)

        client.fetch = AsyncMock(side_effect=slow_fetch)
        scheduler = IngestionScheduler(store, client, interval_seconds=3600)

        scheduler.start()
        first_task = scheduler._task
        await asyncio.wait_for(started.wait(), timeout=1)
        scheduler.stop()
        scheduler.start()
        assert scheduler._task is not first_task

        release.set()
        for _ in range(50):
            if client.fetch.await_count == 2:
                break
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(scheduler.wait_closed(), timeout=1)

        assert first_task.done()
        assert overlapped is False
        assert client.fetch.await_count == 2
        assert len(store.list_articles_by_feed(feed.id)) == 2
