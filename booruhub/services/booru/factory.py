from typing import List, Optional

from ...http_client import BooruHTTPClient, http_client
from .base import SourceAdapter
from .danbooru import DanbooruClient
from .e621 import E621Client
from .gelbooru import GelbooruClient
from .moebooru import MoebooruClient
from .types import BooruAPIType, BooruSourceConfig, Post, Tag

def get_client_for_source(source: BooruSourceConfig, http: Optional[BooruHTTPClient] = None) -> SourceAdapter:
    """
    Build the adapter for a source's API family.
    """
    http = http or http_client
    api_type = BooruAPIType(source.api_type)

    if api_type is BooruAPIType.danbooru:
        return DanbooruClient(http, source)
    elif api_type is BooruAPIType.gelbooru:
        return GelbooruClient(http, source)
    elif api_type is BooruAPIType.moebooru:
        return MoebooruClient(http, source)
    elif api_type is BooruAPIType.e621:
        return E621Client(http, source)
    raise ValueError(f"Unsupported API type: {source.api_type}")

class BooruService:
    """Entry point used by the gallery and the routes: one call per operation, any source."""

    def __init__(self, http: Optional[BooruHTTPClient] = None):
        self.http = http or http_client

    def client_for(self, source: BooruSourceConfig) -> SourceAdapter:
        return get_client_for_source(source, self.http)

    async def fetch_posts(
        self,
        source: BooruSourceConfig,
        tags: Optional[str] = None,
        page: int = 1,
        limit: int = 40,
    ) -> List[Post]:
        return await self.client_for(source).fetch_posts(tags=tags, page=page, limit=limit)

    async def fetch_post(self, post_id: int, source: BooruSourceConfig) -> Optional[Post]:
        return await self.client_for(source).fetch_post(post_id)

    async def search_tags(self, query: str, source: BooruSourceConfig, limit: int = 20) -> List[Tag]:
        if not query:
            return []
        return await self.client_for(source).search_tags(query, limit=limit)

    async def autocomplete(self, query: str, source: BooruSourceConfig) -> List[Tag]:
        if not query:
            return []
        return await self.client_for(source).autocomplete(query)

_service: Optional[BooruService] = None

def get_booru_service() -> BooruService:
    """Shared service bound to the process-wide HTTP client."""
    global _service
    if _service is None:
        _service = BooruService()
    return _service
