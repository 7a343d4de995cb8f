"""
Gallery sessions: single-source paging and multi-source fan-out.

A session holds the posts for one logical view. Only one load runs per
session at a time from the caller's point of view; a newer query supersedes
an older one, and the older response is dropped when it finally arrives
(every load is tagged with a generation number).
"""

import asyncio
import enum
import logging
import random
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import settings
from .booru import BooruService, BooruSourceConfig, Post

logger = logging.getLogger(__name__)

class SortOrder(str, enum.Enum):
    newest = "newest"
    score = "score"
    random = "random"

def merge_key(post: Post) -> Tuple[int, str]:
    """Ids collide across sources, so the file URL is part of the key."""
    return (post.id, post.file_url or "")

def merge_posts(batches: Iterable[Sequence[Post]]) -> List[Post]:
    """Flatten, drop duplicate (id, file_url) pairs keeping the first, sort by score descending."""
    seen = set()
    unique = []
    for batch in batches:
        for post in batch:
            key = merge_key(post)
            if key in seen:
                continue
            seen.add(key)
            unique.append(post)
    return sorted(unique, key=lambda p: p.score, reverse=True)

def filter_visible(posts: Iterable[Post], preferences) -> List[Post]:
    """Posts allowed by the rating flags and the tag blacklist of `preferences`."""
    if preferences is None:
        return list(posts)
    return [
        post for post in posts
        if preferences.should_show(post.rating) and not preferences.contains_blacklisted_tag(post.tags)
    ]

async def fetch_from_all_sources(
    service: BooruService,
    sources: Sequence[BooruSourceConfig],
    tags: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Post]:
    """
    Query every given source concurrently and merge the results.

    Each post is stamped with its source's name and base URL. Raises the
    first error only when every source failed; partial failures are logged.
    """
    limit = limit or settings.MULTI_SOURCE_LIMIT
    if not sources:
        return []

    results = await asyncio.gather(
        *(service.fetch_posts(source, tags=tags, page=1, limit=limit) for source in sources),
        return_exceptions=True,
    )

    batches = []
    errors = []
    for source, result in zip(sources, results):
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result
        if isinstance(result, Exception):
            logger.warning(f"Fan-out: {source.name} failed: {result}")
            errors.append(result)
            continue
        batches.append([post.with_source(source.name, source.base_url) for post in result])

    if not batches and errors:
        raise errors[0]

    merged = merge_posts(batches)
    logger.info(f"Fan-out over {len(sources)} sources: {len(merged)} posts, {len(errors)} failed")
    return merged

class GallerySession:
    """State for one gallery view."""

    def __init__(
        self,
        service: Optional[BooruService] = None,
        posts_per_page: Optional[int] = None,
        multi_source_limit: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.service = service or BooruService()
        self.posts_per_page = posts_per_page or settings.POSTS_PER_PAGE
        self.multi_source_limit = multi_source_limit or settings.MULTI_SOURCE_LIMIT
        self._random = rng or random.Random()

        self.posts: List[Post] = []
        self.is_loading = False
        self.is_loading_more = False
        self.error: Optional[Exception] = None
        self.has_more_pages = True

        self.current_tags = ""
        self.current_source: Optional[BooruSourceConfig] = None
        self.is_multi_source_search = False
        self.sources_for_multi_search: List[BooruSourceConfig] = []
        self.sort_order = SortOrder.newest

        self._current_page = 1
        self._unsorted_posts: List[Post] = []  # fetch order, kept for re-sorting
        self._generation = 0

    @property
    def current_page(self) -> int:
        return self._current_page

    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def load_posts(self, source: BooruSourceConfig, tags: Optional[str] = None):
        """Load the first page of one source, replacing the current posts."""
        generation = self._begin()
        self.is_multi_source_search = False
        self.current_source = source
        self.current_tags = tags or ""
        self._current_page = 1
        self.has_more_pages = True
        self.is_loading = True
        self.is_loading_more = False
        self.error = None

        try:
            new_posts = await self.service.fetch_posts(
                source, tags=tags or None, page=1, limit=self.posts_per_page
            )
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.warning(f"Loading {source.name} failed: {e}")
            self.error = e
            self._store_posts([])
        else:
            if not self._is_current(generation):
                logger.debug(f"Dropping stale response for {source.name} tags={tags!r}")
                return
            self._store_posts(new_posts)
            self.has_more_pages = len(new_posts) >= self.posts_per_page
        self.is_loading = False

    async def load_posts_from_all_sources(self, sources: Sequence[BooruSourceConfig], tags: Optional[str] = None):
        """Fan out to every enabled source. Pagination is off in this mode."""
        enabled = [source for source in sources if source.is_enabled]
        if not enabled:
            return

        generation = self._begin()
        self.is_multi_source_search = True
        self.sources_for_multi_search = enabled
        self.current_source = None
        self.current_tags = tags or ""
        self._current_page = 1
        self.has_more_pages = False
        self.is_loading = True
        self.is_loading_more = False
        self.error = None

        try:
            merged = await fetch_from_all_sources(
                self.service, enabled, tags=tags or None, limit=self.multi_source_limit
            )
        except Exception as e:
            if not self._is_current(generation):
                return
            self.error = e
            self._store_posts([])
        else:
            if not self._is_current(generation):
                logger.debug(f"Dropping stale fan-out response for tags={tags!r}")
                return
            self._store_posts(merged)
        self.is_loading = False

    async def load_more_posts(self):
        """Append the next page. Single-source only."""
        if (
            self.is_loading_more
            or self.is_loading
            or not self.has_more_pages
            or self.is_multi_source_search
            or self.current_source is None
        ):
            return

        generation = self._generation
        source = self.current_source
        self.is_loading_more = True
        self._current_page += 1

        try:
            new_posts = await self.service.fetch_posts(
                source,
                tags=self.current_tags or None,
                page=self._current_page,
                limit=self.posts_per_page,
            )
        except Exception as e:
            if not self._is_current(generation):
                return
            # keep what we have, retry the same page next time
            self._current_page -= 1
            self.error = e
        else:
            if not self._is_current(generation):
                return
            existing_ids = {post.id for post in self._unsorted_posts}
            unique = [post for post in new_posts if post.id not in existing_ids]
            self._store_posts(unique, append=True)
            self.has_more_pages = len(new_posts) >= self.posts_per_page
        self.is_loading_more = False

    async def refresh(self):
        tags = self.current_tags or None
        if self.is_multi_source_search:
            await self.load_posts_from_all_sources(self.sources_for_multi_search, tags=tags)
        elif self.current_source is not None:
            await self.load_posts(self.current_source, tags=tags)

    def should_load_more(self, current_post: Post) -> bool:
        """True when `current_post` is the last one shown and another page may exist."""
        if self.is_multi_source_search or not self.posts:
            return False
        last = self.posts[-1]
        return current_post.id == last.id and self.has_more_pages and not self.is_loading_more

    def set_sort_order(self, sort_order: SortOrder):
        """Re-sort the held posts. Selecting random again re-shuffles."""
        sort_order = SortOrder(sort_order)
        if sort_order == self.sort_order and sort_order is not SortOrder.random:
            return
        self.sort_order = sort_order
        self._apply_sorting()

    def _apply_sorting(self):
        if self.sort_order is SortOrder.newest:
            self.posts = list(self._unsorted_posts)
        elif self.sort_order is SortOrder.score:
            self.posts = sorted(self._unsorted_posts, key=lambda p: p.score, reverse=True)
        else:
            shuffled = list(self._unsorted_posts)
            self._random.shuffle(shuffled)
            self.posts = shuffled

    def _store_posts(self, new_posts: Sequence[Post], append: bool = False):
        if append:
            self._unsorted_posts.extend(new_posts)
        else:
            self._unsorted_posts = list(new_posts)
        self._apply_sorting()

    def visible_posts(self, preferences) -> List[Post]:
        return filter_visible(self.posts, preferences)
