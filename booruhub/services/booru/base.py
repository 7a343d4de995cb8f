from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import urlencode, urlparse

from ...errors import InvalidURLError
from .types import Post, Tag

@dataclass(frozen=True)
class Endpoint:
    """A GET endpoint on one booru: base URL, path and ordered query parameters."""
    base_url: str
    path: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def url(self) -> str:
        parsed = urlparse(self.base_url.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURLError(self.base_url)
        return f"{parsed.scheme}://{parsed.netloc}{self.path}"

    @property
    def full_url(self) -> str:
        """URL including the encoded query string, in parameter order."""
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params)}"

def resolve_url(base_url: str, url: Optional[str]) -> Optional[str]:
    """Make a relative file/preview URL absolute against the source base URL."""
    if not url:
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http"):
        return url
    base_url = base_url.rstrip("/")
    if url.startswith("/"):
        return f"{base_url}{url}"
    return f"{base_url}/{url}"

def with_tags(params: Dict[str, Any], tags: Optional[str]) -> Dict[str, Any]:
    """Add the `tags` parameter only when a non-empty tag query was given."""
    if tags:
        params["tags"] = tags
    return params

class SourceAdapter(Protocol):
    """Interface every source family implements. Families are picked by `BooruAPIType`, not subclassing."""

    async def fetch_posts(self, tags: Optional[str] = None, page: int = 1, limit: int = 40) -> List[Post]:
        ...

    async def fetch_post(self, post_id: int) -> Optional[Post]:
        ...

    async def search_tags(self, query: str, limit: int = 20) -> List[Tag]:
        ...

    async def autocomplete(self, query: str) -> List[Tag]:
        ...
