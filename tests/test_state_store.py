"""Tests for frontier state persistence."""

import json
from unittest.mock import AsyncMock

import pytest

from browsercrawler.crawler.exceptions import CorruptStateError
from browsercrawler.crawler.request import CrawlRequest
from browsercrawler.crawler.url_frontier import CrawlFrontier, CrawlStrategy
from browsercrawler.storage.state_store import FileStateStore, RedisStateStore


@pytest.fixture
def frontier_state():
    frontier = CrawlFrontier(crawl_strategy=CrawlStrategy.BREADTH_FIRST)
    frontier.feed(CrawlRequest(url="https://example.com/", priority=3), is_seed=True)
    frontier.feed(CrawlRequest(url="https://example.com/about", depth=1, metadata={'tag': 'x'}))
    frontier.get_next_candidate()
    return frontier.snapshot()


class TestFileStateStore:
    """Test cases for FileStateStore."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path, frontier_state):
        store = FileStateStore(tmp_path / "state" / "frontier.json")

        await store.save(frontier_state)
        loaded = await store.load()

        assert loaded == frontier_state
        assert not (tmp_path / "state" / "frontier.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_load_missing_file(self, tmp_path):
        store = FileStateStore(tmp_path / "missing.json")

        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "frontier.json"
        path.write_text("{not json")

        with pytest.raises(CorruptStateError):
            await FileStateStore(path).load()

    @pytest.mark.asyncio
    async def test_load_non_object(self, tmp_path):
        path = tmp_path / "frontier.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(CorruptStateError):
            await FileStateStore(path).load()

    @pytest.mark.asyncio
    async def test_load_invalid_utf8_file(self, tmp_path):
        path = tmp_path / "frontier.json"
        path.write_bytes(b'{"pending": "\xff\xfe"}')

        with pytest.raises(CorruptStateError):
            await FileStateStore(path).load()


class TestRedisStateStore:
    """Test cases for RedisStateStore."""

    @pytest.fixture
    def redis_client(self):
        client = AsyncMock()
        client.get.return_value = None
        return client

    @pytest.mark.asyncio
    async def test_save_writes_json(self, redis_client, frontier_state):
        store = RedisStateStore(redis_client, key='test:state')

        await store.save(frontier_state)

        key, payload = redis_client.set.call_args.args
        assert key == 'test:state'
        assert json.loads(payload) == frontier_state.to_dict()

    @pytest.mark.asyncio
    async def test_load_decodes_bytes(self, redis_client, frontier_state):
        redis_client.get.return_value = json.dumps(frontier_state.to_dict()).encode('utf-8')
        store = RedisStateStore(redis_client, key='test:state')

        loaded = await store.load()

        redis_client.get.assert_awaited_once_with('test:state')
        assert loaded == frontier_state

    @pytest.mark.asyncio
    async def test_load_missing_key(self, redis_client):
        assert await RedisStateStore(redis_client).load() is None

    @pytest.mark.asyncio
    async def test_load_corrupt_value(self, redis_client):
        redis_client.get.return_value = b'{"pending": "oops"}'

        with pytest.raises(CorruptStateError):
            await RedisStateStore(redis_client).load()

    @pytest.mark.asyncio
    async def test_load_invalid_utf8_value(self, redis_client):
        redis_client.get.return_value = b'\xff\xfe{}'

        with pytest.raises(CorruptStateError):
            await RedisStateStore(redis_client).load()

    @pytest.mark.asyncio
    async def test_save_error_propagates(self, redis_client, frontier_state):
        redis_client.set.side_effect = ConnectionError("redis is down")

        with pytest.raises(ConnectionError):
            await RedisStateStore(redis_client).save(frontier_state)
