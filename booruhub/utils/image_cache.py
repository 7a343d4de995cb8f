"""
Two-tier image cache: memory LRU in front of a content-addressed disk store.

Lookup goes memory -> disk -> network. A disk hit is promoted into memory and
its access time refreshed; a network hit is JPEG-encoded and written to both
tiers. Disk and encoding failures are logged and treated as misses.

Keys are the SHA-256 of the URL string as given. URLs whose query parameters
differ only in order map to different entries.
"""

import asyncio
import hashlib
import io
import logging
import os
import tempfile
import threading
import time
from collections import OrderedDict
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config import settings
from ..errors import InvalidResponseError
from ..http_client import BooruHTTPClient, http_client

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".jpg"

def cache_key(url: str) -> str:
    """Fixed-length hex digest of the URL's string form."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()

def encode_jpeg(data: bytes, quality: int = 85) -> Optional[bytes]:
    """Decode any image Pillow understands and re-encode it as JPEG. None when undecodable."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            # Convert to RGB if necessary
            if img.mode in ('RGBA', 'LA', 'P'):
                if img.mode == 'P':
                    img = img.convert('RGBA')
                background = Image.new('RGB', img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1])
                img = background
            elif img.mode != 'RGB':
                img = img.convert('RGB')

            out = io.BytesIO()
            img.save(out, 'JPEG', quality=quality, optimize=True)
            return out.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Could not decode image data: {e}")
        return None

class MemoryImageCache:
    """
    Bounded by entry count and total byte cost; evicts least recently used first.
    Safe to share between threads.
    """

    def __init__(self, count_limit: Optional[int] = None, cost_limit: Optional[int] = None):
        self.count_limit = count_limit or settings.MEMORY_CACHE_COUNT_LIMIT
        self.cost_limit = cost_limit or settings.MEMORY_CACHE_COST_LIMIT
        self._entries: "OrderedDict[str, bytes]" = OrderedDict()
        self._total_cost = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            data = self._entries.get(key)
            if data is not None:
                self._entries.move_to_end(key)
            return data

    def set(self, key: str, data: bytes):
        cost = len(data)
        if cost > self.cost_limit:
            # never cached, and an older value under the same key is now stale
            self.remove(key)
            return
        with self._lock:
            old = self._entries.pop(key, None)
            if old is not None:
                self._total_cost -= len(old)
            self._entries[key] = data
            self._total_cost += cost
            while len(self._entries) > self.count_limit or self._total_cost > self.cost_limit:
                _, evicted = self._entries.popitem(last=False)
                self._total_cost -= len(evicted)

    def remove(self, key: str):
        with self._lock:
            old = self._entries.pop(key, None)
            if old is not None:
                self._total_cost -= len(old)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._total_cost = 0

    @property
    def total_cost(self) -> int:
        return self._total_cost

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

class DiskImageCache:
    """
    One JPEG file per key. The file's mtime is its last-access time and drives
    both the age purge and the LRU eviction order.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        size_limit: Optional[int] = None,
        target_ratio: Optional[float] = None,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.directory = Path(directory or settings.CACHE_DIR)
        self.size_limit = size_limit or settings.DISK_CACHE_LIMIT
        self.target_ratio = target_ratio if target_ratio is not None else settings.DISK_CACHE_TARGET_RATIO
        if max_age_seconds is None:
            max_age_seconds = settings.DISK_CACHE_MAX_AGE_DAYS * 24 * 60 * 60
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._evict_lock = threading.Lock()

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create image cache directory {self.directory}: {e}")
        self.purge_expired()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}{CACHE_SUFFIX}"

    def read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Image cache read failed for {path.name}: {e}")
            return None
        try:
            now = self._clock()
            os.utime(path, (now, now))
        except OSError as e:
            logger.debug(f"Could not refresh access time of {path.name}: {e}")
        return data

    def write(self, key: str, data: bytes) -> bool:
        """Write through a temp file and rename, so readers never see partial files."""
        path = self.path_for(key)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(dir=self.directory, prefix=".tmp-", suffix=CACHE_SUFFIX, delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
            now = self._clock()
            os.utime(path, (now, now))
        except OSError as e:
            logger.warning(f"Image cache write failed for {path.name}: {e}")
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        self.evict_if_needed()
        return True

    def remove(self, key: str):
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove cache entry {key}: {e}")

    def entries(self) -> List[Tuple[Path, float, int]]:
        """(path, mtime, size) for every cache file, temp files excluded."""
        result = []
        try:
            candidates = list(self.directory.iterdir())
        except OSError as e:
            logger.warning(f"Could not list image cache directory: {e}")
            return result
        for path in candidates:
            if path.suffix != CACHE_SUFFIX or path.name.startswith(".tmp-"):
                continue
            try:
                stat = path.stat()
            except OSError:
                continue
            result.append((path, stat.st_mtime, stat.st_size))
        return result

    def total_size(self) -> int:
        return sum(size for _, _, size in self.entries())

    def evict_if_needed(self) -> int:
        """
        Once usage exceeds the limit, delete oldest-accessed files until usage
        is at or under `size_limit * target_ratio`. Returns the number removed.
        """
        with self._evict_lock:
            entries = self.entries()
            total = sum(size for _, _, size in entries)
            if total <= self.size_limit:
                return 0

            target = self.size_limit * self.target_ratio
            removed = 0
            for path, _, size in sorted(entries, key=lambda entry: entry[1]):
                if total <= target:
                    break
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning(f"Could not evict {path.name}: {e}")
                    continue
                total -= size
                removed += 1
            logger.info(f"Evicted {removed} image cache entries, {total} bytes remain")
            return removed

    def purge_expired(self) -> int:
        """Delete entries not touched within the retention window, regardless of size."""
        cutoff = self._clock() - self.max_age_seconds
        removed = 0
        for path, mtime, _ in self.entries():
            if mtime >= cutoff:
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not purge {path.name}: {e}")
        if removed:
            logger.info(f"Purged {removed} expired image cache entries")
        return removed

    def clear(self):
        for path, _, _ in self.entries():
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {path.name}: {e}")

class ImageCache:
    """Memory + disk cache with network fallback for image URLs."""

    def __init__(
        self,
        memory: Optional[MemoryImageCache] = None,
        disk: Optional[DiskImageCache] = None,
        http: Optional[BooruHTTPClient] = None,
        jpeg_quality: Optional[int] = None,
    ):
        self.memory = memory or MemoryImageCache()
        self.disk = disk or DiskImageCache()
        self.http = http or http_client
        self.jpeg_quality = jpeg_quality or settings.JPEG_QUALITY

    async def get(self, url: str) -> Optional[bytes]:
        """Cached bytes for `url` from memory or disk, without touching the network."""
        data = self.memory.get(url)
        if data is not None:
            logger.debug(f"Memory hit: {url}")
            return data

        data = await asyncio.to_thread(self.disk.read, cache_key(url))
        if data is not None:
            logger.debug(f"Disk hit: {url}")
            self.memory.set(url, data)
        return data

    async def set(self, url: str, data: bytes) -> bool:
        """JPEG-encode `data` and store it in both tiers. False when it is not an image."""
        encoded = await asyncio.to_thread(encode_jpeg, data, self.jpeg_quality)
        if encoded is None:
            return False
        self.memory.set(url, encoded)
        await asyncio.to_thread(self.disk.write, cache_key(url), encoded)
        return True

    async def load(self, url: str) -> bytes:
        """
        Cached bytes, fetching from the network on a miss. Fetch errors
        propagate; an undecodable body raises InvalidResponseError. Nothing is
        cached on failure.
        """
        cached = await self.get(url)
        if cached is not None:
            return cached

        raw = await self.http.fetch_bytes(url)
        encoded = await asyncio.to_thread(encode_jpeg, raw, self.jpeg_quality)
        if encoded is None:
            raise InvalidResponseError(f"Undecodable image data from {url}")

        self.memory.set(url, encoded)
        await asyncio.to_thread(self.disk.write, cache_key(url), encoded)
        return encoded

    async def remove(self, url: str):
        self.memory.remove(url)
        await asyncio.to_thread(self.disk.remove, cache_key(url))

    async def clear(self):
        self.memory.clear()
        await asyncio.to_thread(self.disk.clear)
        logger.info("Image cache cleared")

_image_cache: Optional[ImageCache] = None

def get_image_cache() -> ImageCache:
    """Process-wide cache, created (and age-purged) on first use."""
    global _image_cache
    if _image_cache is None:
        _image_cache = ImageCache()
    return _image_cache
