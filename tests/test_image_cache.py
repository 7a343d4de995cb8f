""" Tests for the memory/disk image cache """

import os

import pytest

from conftest import image_bytes, run
from booruhub.errors import InvalidResponseError, NotFoundError
from booruhub.utils.image_cache import (
    DiskImageCache,
    ImageCache,
    MemoryImageCache,
    cache_key,
    encode_jpeg,
)

DAY = 24 * 60 * 60
JPEG_MAGIC = b"\xff\xd8"


class Clock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeImageHTTP:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def fetch_bytes(self, url):
        self.calls.append(url)
        result = self.responses[url]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def disk(tmp_path, clock):
    return DiskImageCache(tmp_path / "cache", size_limit=10_000_000, target_ratio=0.8, max_age_seconds=7 * DAY,
                          clock=clock)


# Keys and encoding

def test_cache_key_is_deterministic_hex():
    key = cache_key("https://example.com/a.jpg")
    assert key == cache_key("https://example.com/a.jpg")
    assert key != cache_key("https://example.com/b.jpg")
    assert len(key) == 64
    int(key, 16)


def test_cache_key_does_not_normalize_query_order():
    assert cache_key("https://x/a?b=1&c=2") != cache_key("https://x/a?c=2&b=1")


@pytest.mark.parametrize("fmt, mode, color", [
    ("PNG", "RGB", (10, 20, 30)),
    ("PNG", "RGBA", (10, 20, 30, 128)),
    ("GIF", "P", 3),
    ("JPEG", "L", 120),
])
def test_encode_jpeg_accepts_common_formats(fmt, mode, color):
    encoded = encode_jpeg(image_bytes(fmt, mode=mode, color=color))
    assert encoded.startswith(JPEG_MAGIC)


def test_encode_jpeg_rejects_non_images():
    assert encode_jpeg(b"<html>403 Forbidden</html>") is None
    assert encode_jpeg(b"") is None


# Memory tier

def test_memory_count_limit_evicts_least_recently_used():
    memory = MemoryImageCache(count_limit=2, cost_limit=1000)
    memory.set("a", b"1")
    memory.set("b", b"2")
    memory.get("a")
    memory.set("c", b"3")

    assert "a" in memory
    assert "b" not in memory
    assert "c" in memory
    assert len(memory) == 2


def test_memory_cost_limit():
    memory = MemoryImageCache(count_limit=100, cost_limit=10)
    memory.set("a", b"x" * 6)
    memory.set("b", b"x" * 6)
    assert "a" not in memory
    assert memory.total_cost == 6

    memory.set("huge", b"x" * 11)
    assert "huge" not in memory
    assert "b" in memory


def test_memory_oversized_value_drops_older_entry():
    memory = MemoryImageCache(count_limit=10, cost_limit=10)
    memory.set("k", b"old")
    memory.set("k", b"x" * 11)
    assert memory.get("k") is None
    assert "k" not in memory
    assert memory.total_cost == 0


def test_memory_replace_and_remove():
    memory = MemoryImageCache(count_limit=10, cost_limit=100)
    memory.set("a", b"x" * 10)
    memory.set("a", b"x" * 4)
    assert memory.total_cost == 4
    memory.remove("a")
    memory.remove("missing")
    assert memory.total_cost == 0
    assert memory.get("a") is None


# Disk tier

def test_disk_write_read(disk):
    assert disk.write("k", b"data")
    assert disk.read("k") == b"data"
    assert disk.read("other") is None
    assert disk.path_for("k").name == "k.jpg"


def test_disk_write_leaves_no_temp_files(disk):
    for i in range(5):
        disk.write(f"k{i}", b"x" * 10)
    names = os.listdir(disk.directory)
    assert sorted(names) == [f"k{i}.jpg" for i in range(5)]


def test_disk_read_refreshes_access_time(disk, clock):
    disk.write("k", b"data")
    clock.now += 100
    disk.read("k")
    assert disk.path_for("k").stat().st_mtime == pytest.approx(clock.now)


def test_disk_eviction_removes_oldest_down_to_target(tmp_path, clock):
    disk = DiskImageCache(tmp_path, size_limit=100, target_ratio=0.8, max_age_seconds=7 * DAY, clock=clock)
    for key in ("a", "b", "c"):
        disk.write(key, b"x" * 30)
        clock.now += 1
    assert disk.total_size() == 90

    # touch "a" so "b" becomes the oldest
    disk.read("a")
    clock.now += 1
    disk.write("d", b"x" * 30)

    remaining = sorted(path.stem for path, _, _ in disk.entries())
    assert remaining == ["a", "d"]
    assert disk.total_size() <= 80


def test_disk_eviction_noop_under_limit(disk):
    disk.write("a", b"x" * 10)
    assert disk.evict_if_needed() == 0


def test_expired_entries_purged_on_init(tmp_path, clock):
    disk = DiskImageCache(tmp_path, size_limit=1000, max_age_seconds=7 * DAY, clock=clock)
    disk.write("old", b"x")
    clock.now += 3 * DAY
    disk.write("recent", b"y")

    clock.now += 5 * DAY
    reopened = DiskImageCache(tmp_path, size_limit=1000, max_age_seconds=7 * DAY, clock=clock)

    assert reopened.read("old") is None
    assert reopened.read("recent") == b"y"


def test_disk_clear_and_remove(disk):
    disk.write("a", b"1")
    disk.write("b", b"2")
    disk.remove("a")
    disk.remove("missing")
    assert disk.read("a") is None
    disk.clear()
    assert disk.entries() == []


# Combined cache

def test_set_and_get_roundtrip(disk):
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, FakeImageHTTP({}))
    url = "https://cdn.example/a.png"

    assert run(cache.set(url, image_bytes()))
    data = run(cache.get(url))
    assert data.startswith(JPEG_MAGIC)
    assert disk.read(cache_key(url)) == data


def test_set_rejects_non_image(disk):
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, FakeImageHTTP({}))
    assert not run(cache.set("https://cdn.example/x", b"not an image"))
    assert run(cache.get("https://cdn.example/x")) is None
    assert disk.entries() == []


def test_disk_hit_is_promoted_to_memory(disk):
    url = "https://cdn.example/a.png"
    disk.write(cache_key(url), b"jpeg-bytes")
    memory = MemoryImageCache(10, 10_000_000)
    cache = ImageCache(memory, disk, FakeImageHTTP({}))

    assert run(cache.get(url)) == b"jpeg-bytes"
    assert url in memory


def test_load_fetches_once_then_serves_from_cache(disk):
    url = "https://cdn.example/a.png"
    http = FakeImageHTTP({url: image_bytes()})
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, http)

    first = run(cache.load(url))
    second = run(cache.load(url))

    assert first == second
    assert first.startswith(JPEG_MAGIC)
    assert http.calls == [url]


def test_load_survives_memory_clear(disk):
    url = "https://cdn.example/a.png"
    http = FakeImageHTTP({url: image_bytes()})
    memory = MemoryImageCache(10, 10_000_000)
    cache = ImageCache(memory, disk, http)

    run(cache.load(url))
    memory.clear()
    assert run(cache.load(url)).startswith(JPEG_MAGIC)
    assert http.calls == [url]


def test_load_undecodable_is_not_cached(disk):
    url = "https://cdn.example/broken"
    http = FakeImageHTTP({url: b"<html>oops</html>"})
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, http)

    with pytest.raises(InvalidResponseError):
        run(cache.load(url))
    assert run(cache.get(url)) is None
    assert disk.entries() == []


def test_load_propagates_fetch_errors(disk):
    url = "https://cdn.example/gone.jpg"
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, FakeImageHTTP({url: NotFoundError()}))
    with pytest.raises(NotFoundError):
        run(cache.load(url))
    assert disk.entries() == []


def test_remove_and_clear(disk):
    cache = ImageCache(MemoryImageCache(10, 10_000_000), disk, FakeImageHTTP({}))
    run(cache.set("https://cdn.example/a", image_bytes()))
    run(cache.set("https://cdn.example/b", image_bytes()))

    run(cache.remove("https://cdn.example/a"))
    assert run(cache.get("https://cdn.example/a")) is None

    run(cache.clear())
    assert run(cache.get("https://cdn.example/b")) is None
