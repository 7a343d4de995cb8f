from .base import Endpoint, SourceAdapter
from .danbooru import DanbooruClient
from .e621 import E621Client
from .factory import BooruService, get_booru_service, get_client_for_source
from .gelbooru import GelbooruClient
from .moebooru import MoebooruClient
from .types import (
    DEFAULT_SOURCES,
    BooruAPIType,
    BooruSourceConfig,
    ContentRating,
    Post,
    Tag,
    TagCategory,
)

__all__ = [
    "BooruAPIType",
    "BooruService",
    "BooruSourceConfig",
    "ContentRating",
    "DanbooruClient",
    "DEFAULT_SOURCES",
    "E621Client",
    "Endpoint",
    "GelbooruClient",
    "MoebooruClient",
    "Post",
    "SourceAdapter",
    "Tag",
    "TagCategory",
    "get_booru_service",
    "get_client_for_source",
]
