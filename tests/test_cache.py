"""Tests for the on-disk content cache."""

import json
import time

import pytest

from tp_sync.storage import CacheKind, ContentCache, parse_duration


@pytest.fixture
def cache(tmp_path):
    return ContentCache(tmp_path / "cache")


async def test_written_value_is_fresh(cache):
    await cache.write("http://remote/a", "hello")
    assert await cache.is_fresh("http://remote/a")
    assert await cache.read("http://remote/a") == "hello"
    assert cache.hits == 1


async def test_unknown_key(cache):
    assert not await cache.is_fresh("nothing")
    assert cache.misses == 1
    with pytest.raises(KeyError):
        await cache.read("nothing")


async def test_zero_max_age_is_stale(cache):
    await cache.write("k", "v")
    assert not await cache.is_fresh("k", max_age=0)


async def test_expired_record(cache):
    await cache.write("k", "v")
    record_path = cache._record_path("k")
    record = json.loads(record_path.read_text())
    record["saved_at"] = time.time() - 2 * 86400
    record_path.write_text(json.dumps(record))

    assert not await cache.is_fresh("k", max_age="1d")
    assert await cache.is_fresh("k", max_age="1w")


async def test_json_and_buffer_values(cache):
    await cache.write("catalog", {"view": [{"path": "a.xml"}]}, CacheKind.JSON)
    await cache.write("image", b"\x89PNG", CacheKind.BUFFER)
    assert await cache.read("catalog") == {"view": [{"path": "a.xml"}]}
    assert await cache.read("image") == b"\x89PNG"


async def test_disabled_cache_is_never_fresh(tmp_path):
    cache = ContentCache(tmp_path / "cache", enabled=False)
    await cache.write("k", "v")
    assert not await cache.is_fresh("k")
    assert not (tmp_path / "cache").exists()


async def test_unreadable_record_is_a_miss(cache):
    cache.directory.mkdir(parents=True)
    cache._record_path("k").write_text("{broken")
    assert not await cache.is_fresh("k")


@pytest.mark.parametrize(
    "value, seconds",
    [("1d", 86400), ("12h", 43200), ("30m", 1800), ("45s", 45), ("90", 90), (2.5, 2.5)],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == seconds


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("tomorrow")


async def test_buffer_without_data_file_is_a_miss(cache):
    await cache.write("image", b"\x89PNG", CacheKind.BUFFER)
    cache._buffer_path("image").unlink()

    assert not await cache.is_fresh("image")
    with pytest.raises(KeyError):
        await cache.read("image")
