import logging
from typing import List, Optional

from ...http_client import BooruHTTPClient
from .base import Endpoint, with_tags
from .decoding import PostFields, decode_posts, decode_tags, require_list
from .types import BooruSourceConfig, Post, Tag

logger = logging.getLogger(__name__)

# Generic Danbooru-like names, no preview/sample overrides
MOEBOORU_FIELDS = PostFields(
    width=("width",),
    height=("height",),
    tag_string=("tags",),
    uploader_name=("author",),
)

AUTOCOMPLETE_LIMIT = 10

class MoebooruClient:
    """Client for Moebooru sites (Konachan, Yande.re)."""

    def __init__(self, http: BooruHTTPClient, source: BooruSourceConfig):
        self.http = http
        self.source = source
        self.base_url = source.base_url.rstrip("/")

    def posts_endpoint(self, tags: Optional[str], page: int, limit: int) -> Endpoint:
        params = {"page": page, "limit": limit}
        return Endpoint(self.base_url, "/post.json", with_tags(params, tags))

    async def fetch_posts(self, tags: Optional[str] = None, page: int = 1, limit: int = 40) -> List[Post]:
        endpoint = self.posts_endpoint(tags, page, limit)
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        posts = decode_posts(require_list(data), MOEBOORU_FIELDS)
        logger.debug(f"{self.source.name}: {len(posts)} posts for tags={tags!r} page={page}")
        return posts

    async def fetch_post(self, post_id: int) -> Optional[Post]:
        posts = await self.fetch_posts(tags=f"id:{post_id}", page=1, limit=1)
        return posts[0] if posts else None

    async def search_tags(self, query: str, limit: int = 20) -> List[Tag]:
        """Name-prefix match ordered by count."""
        if not query:
            return []
        endpoint = Endpoint(self.base_url, "/tag.json", {
            "name": f"{query}*",
            "limit": limit,
            "order": "count",
        })
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        return decode_tags(require_list(data))

    async def autocomplete(self, query: str) -> List[Tag]:
        return await self.search_tags(query, limit=AUTOCOMPLETE_LIMIT)
