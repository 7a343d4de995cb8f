import logging
from typing import List, Optional

from ...http_client import BooruHTTPClient
from .base import Endpoint, with_tags
from .decoding import PostFields, decode_post, decode_posts, decode_tags, require_list, stable_tag_id, as_int, as_str
from .types import BooruSourceConfig, Post, Tag, TagCategory

logger = logging.getLogger(__name__)

# Danbooru-specific preview/sample fields win over the generic ones
DANBOORU_FIELDS = PostFields(
    preview_url=("preview_file_url", "preview_url"),
    sample_url=("large_file_url", "sample_url"),
)

AUTOCOMPLETE_LIMIT = 10

class DanbooruClient:
    """
    Client for Danbooru-style APIs.
    """

    def __init__(self, http: BooruHTTPClient, source: BooruSourceConfig):
        self.http = http
        self.source = source
        self.base_url = source.base_url.rstrip("/")

    def posts_endpoint(self, tags: Optional[str], page: int, limit: int) -> Endpoint:
        params = {"page": page, "limit": limit}
        return Endpoint(self.base_url, "/posts.json", with_tags(params, tags))

    async def fetch_posts(self, tags: Optional[str] = None, page: int = 1, limit: int = 40) -> List[Post]:
        endpoint = self.posts_endpoint(tags, page, limit)
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        posts = decode_posts(require_list(data), DANBOORU_FIELDS)
        logger.debug(f"{self.source.name}: {len(posts)} posts for tags={tags!r} page={page}")
        return posts

    async def fetch_post(self, post_id: int) -> Optional[Post]:
        endpoint = Endpoint(self.base_url, f"/posts/{post_id}.json")
        data = await self.http.fetch_json(endpoint.url)
        return decode_post(data, DANBOORU_FIELDS)

    async def search_tags(self, query: str, limit: int = 20) -> List[Tag]:
        """Name-prefix match ordered by usage count."""
        if not query:
            return []
        endpoint = Endpoint(self.base_url, "/tags.json", {
            "search[name_matches]": f"{query}*",
            "limit": limit,
            "search[order]": "count",
        })
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        return decode_tags(require_list(data))

    async def autocomplete(self, query: str) -> List[Tag]:
        if not query:
            return []
        endpoint = Endpoint(self.base_url, "/autocomplete.json", {
            "search[query]": query,
            "search[type]": "tag_query",
            "limit": AUTOCOMPLETE_LIMIT,
        })
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        return [self._autocomplete_tag(item) for item in require_list(data)]

    def _autocomplete_tag(self, item) -> Tag:
        """Autocomplete rows carry `value`/`label` instead of `name`, and no id."""
        if not isinstance(item, dict):
            return decode_tags([item])[0]
        name = as_str(item.get("value")) or as_str(item.get("label")) or as_str(item.get("name"))
        if name is None:
            return decode_tags([item])[0]
        return Tag(
            id=stable_tag_id(name),
            name=name,
            category=TagCategory.from_code(item.get("category")),
            post_count=as_int(item.get("post_count")),
        )
