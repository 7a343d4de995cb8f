import logging
from functools import partial
from typing import Any, List, Optional

from ...errors import DecodingError
from ...http_client import BooruHTTPClient
from .base import Endpoint, resolve_url, with_tags
from .decoding import PostFields, decode_posts, decode_tags
from .types import BooruSourceConfig, Post, Tag

logger = logging.getLogger(__name__)

GELBOORU_FIELDS = PostFields(
    width=("width",),
    height=("height",),
    tag_string=("tags",),
    uploader_name=("owner",),
)

AUTOCOMPLETE_LIMIT = 10

def unwrap_list(payload: Any, key: str) -> List[Any]:
    """
    Safebooru answers with a bare array, Gelbooru wraps it as
    {"@attributes": {...}, "post": [...]}. The bare array is tried first; a
    wrapper without the key means an empty result page.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        items = payload.get(key, [])
        if isinstance(items, dict):
            return [items]
        if isinstance(items, list):
            return items
    raise DecodingError(ValueError("Unknown response format"))

class GelbooruClient:
    """
    Client for Gelbooru v0.2 style APIs (index.php?page=dapi...).
    Used by Gelbooru, Safebooru (classic), Rule34 and many others.
    """

    def __init__(self, http: BooruHTTPClient, source: BooruSourceConfig):
        self.http = http
        self.source = source
        self.base_url = source.base_url.rstrip("/")
        self._resolve = partial(resolve_url, self.base_url)

    def posts_endpoint(self, tags: Optional[str], page: int, limit: int) -> Endpoint:
        params = {
            "page": "dapi",
            "s": "post",
            "q": "index",
            "json": "1",
            "pid": page - 1,  # Gelbooru uses 0-indexed page (pid)
            "limit": limit,
        }
        with_tags(params, tags)
        if self.source.api_key:
            params["api_key"] = self.source.api_key
        if self.source.user_id:
            params["user_id"] = self.source.user_id
        return Endpoint(self.base_url, "/index.php", params)

    async def fetch_posts(self, tags: Optional[str] = None, page: int = 1, limit: int = 40) -> List[Post]:
        endpoint = self.posts_endpoint(tags, page, limit)
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        posts = decode_posts(unwrap_list(data, "post"), GELBOORU_FIELDS, self._resolve)
        logger.debug(f"{self.source.name}: {len(posts)} posts for tags={tags!r} pid={page - 1}")
        return posts

    async def fetch_post(self, post_id: int) -> Optional[Post]:
        posts = await self.fetch_posts(tags=f"id:{post_id}", page=1, limit=1)
        return posts[0] if posts else None

    async def search_tags(self, query: str, limit: int = 20) -> List[Tag]:
        """Name-pattern match."""
        if not query:
            return []
        endpoint = Endpoint(self.base_url, "/index.php", {
            "page": "dapi",
            "s": "tag",
            "q": "index",
            "json": "1",
            "name_pattern": f"{query}%",
            "limit": limit,
        })
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        return decode_tags(unwrap_list(data, "tag"))

    async def autocomplete(self, query: str) -> List[Tag]:
        return await self.search_tags(query, limit=AUTOCOMPLETE_LIMIT)
