import logging
from typing import Any, List, Optional

from ...http_client import BooruHTTPClient
from .base import Endpoint, with_tags
from .decoding import as_int, as_str, parse_datetime, require_list, require_object
from .types import BooruSourceConfig, ContentRating, Post, Tag
from ...errors import DecodingError

logger = logging.getLogger(__name__)

# Tag groups joined into the canonical tag string, in this order
E621_TAG_GROUPS = ("general", "artist", "character", "species")

def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}

def _tag_string(tags: dict) -> str:
    names = []
    for group in E621_TAG_GROUPS:
        values = tags.get(group) or []
        names.extend(name for name in values if isinstance(name, str))
    return " ".join(names)

def decode_e621_post(data: Any) -> Post:
    """
    e621 nests everything: file/preview/sample hold URLs and dimensions,
    score is {"up", "down", "total"}, tags are grouped by category.
    """
    data = require_object(data)
    post_id = as_int(data.get("id"))
    if post_id is None:
        raise DecodingError(KeyError("id"))

    file = _section(data, "file")
    sources = data.get("sources")
    source = as_str(sources[0]) if isinstance(sources, list) and sources else None
    ext = as_str(file.get("ext"))

    return Post(
        id=post_id,
        created_at=parse_datetime(data.get("created_at")),
        score=as_int(_section(data, "score").get("total")) or 0,
        source=source,
        rating=ContentRating.from_string(as_str(data.get("rating"))),
        image_width=as_int(file.get("width")) or 0,
        image_height=as_int(file.get("height")) or 0,
        tag_string=_tag_string(_section(data, "tags")),
        file_url=as_str(file.get("url")),
        preview_url=as_str(_section(data, "preview").get("url")),
        sample_url=as_str(_section(data, "sample").get("url")),
        file_ext=ext.lower() if ext else None,
        file_size=as_int(file.get("size")),
    )

class E621Client:
    """Client for e621 / e926."""

    def __init__(self, http: BooruHTTPClient, source: BooruSourceConfig):
        self.http = http
        self.source = source
        self.base_url = source.base_url.rstrip("/")

    def posts_endpoint(self, tags: Optional[str], page: int, limit: int) -> Endpoint:
        params = {"limit": limit, "page": page}
        return Endpoint(self.base_url, "/posts.json", with_tags(params, tags))

    async def fetch_posts(self, tags: Optional[str] = None, page: int = 1, limit: int = 40) -> List[Post]:
        endpoint = self.posts_endpoint(tags, page, limit)
        data = await self.http.fetch_json(endpoint.url, endpoint.params)
        items = require_list(require_object(data).get("posts"))
        posts = [decode_e621_post(item) for item in items]
        logger.debug(f"{self.source.name}: {len(posts)} posts for tags={tags!r} page={page}")
        return posts

    async def fetch_post(self, post_id: int) -> Optional[Post]:
        posts = await self.fetch_posts(tags=f"id:{post_id}", page=1, limit=1)
        return posts[0] if posts else None

    async def search_tags(self, query: str, limit: int = 20) -> List[Tag]:
        # No tag search for e621 yet
        return []

    async def autocomplete(self, query: str) -> List[Tag]:
        return await self.search_tags(query, limit=10)
