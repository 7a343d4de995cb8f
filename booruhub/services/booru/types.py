import enum
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional

ANIMATED_EXTENSIONS = {"gif", "mp4", "webm", "zip"}

class ContentRating(str, enum.Enum):
    safe = "safe"
    general = "general"
    questionable = "questionable"
    sensitive = "sensitive"
    explicit = "explicit"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ContentRating":
        """Parse a rating from its short (s/g/q/e) or long form, in any case. Unknown input is safe."""
        if not value:
            return cls.safe
        return _RATING_ALIASES.get(value.lower(), cls.safe)

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def color(self) -> str:
        if self in (ContentRating.safe, ContentRating.general):
            return "green"
        if self in (ContentRating.questionable, ContentRating.sensitive):
            return "yellow"
        return "red"

_RATING_ALIASES = {
    "s": ContentRating.safe,
    "safe": ContentRating.safe,
    "g": ContentRating.general,
    "general": ContentRating.general,
    "q": ContentRating.questionable,
    "questionable": ContentRating.questionable,
    "e": ContentRating.explicit,
    "explicit": ContentRating.explicit,
    "sensitive": ContentRating.sensitive,
}

class TagCategory(int, enum.Enum):
    """Tag categories, valued by their booru wire codes."""
    general = 0
    artist = 1
    copyright = 3
    character = 4
    meta = 5

    @classmethod
    def from_code(cls, code) -> "TagCategory":
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return cls.general

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @property
    def sort_order(self) -> int:
        return _CATEGORY_SORT_ORDER[self]

_CATEGORY_SORT_ORDER = {
    TagCategory.artist: 0,
    TagCategory.copyright: 1,
    TagCategory.character: 2,
    TagCategory.general: 3,
    TagCategory.meta: 4,
}

class BooruAPIType(str, enum.Enum):
    danbooru = "danbooru"
    gelbooru = "gelbooru"
    moebooru = "moebooru"
    e621 = "e621"

    @property
    def display_name(self) -> str:
        if self is BooruAPIType.e621:
            return "e621"
        return self.value.capitalize()

@dataclass(frozen=True)
class Tag:
    """A tag from a booru."""
    id: int
    name: str
    category: TagCategory = TagCategory.general
    post_count: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name.replace("_", " ")

    @property
    def formatted_count(self) -> str:
        if self.post_count is None:
            return ""
        if self.post_count >= 1_000_000:
            return f"{self.post_count / 1_000_000:.1f}M"
        if self.post_count >= 1_000:
            return f"{self.post_count / 1_000:.1f}K"
        return str(self.post_count)

@dataclass(frozen=True)
class Post:
    """
    Canonical post, the shape every source family is normalized into.

    `id` is only unique within one source. Once posts from several sources
    are merged, (id, source_id) is the identity and (id, file_url) the
    de-duplication key.
    """
    id: int
    created_at: Optional[datetime] = None
    score: int = 0
    source: Optional[str] = None
    rating: ContentRating = ContentRating.safe
    image_width: int = 0
    image_height: int = 0
    tag_string: str = ""
    file_url: Optional[str] = None
    preview_url: Optional[str] = None
    sample_url: Optional[str] = None
    file_ext: Optional[str] = None
    file_size: Optional[int] = None
    uploader_name: Optional[str] = None
    source_id: Optional[str] = None
    source_base_url: Optional[str] = None

    @property
    def tags(self) -> List[str]:
        return [tag for tag in self.tag_string.split(" ") if tag]

    @property
    def aspect_ratio(self) -> float:
        if self.image_height <= 0:
            return 1.0
        return self.image_width / self.image_height

    @property
    def is_animated(self) -> bool:
        if not self.file_ext:
            return False
        return self.file_ext.lower() in ANIMATED_EXTENSIONS

    @property
    def viewing_url(self) -> Optional[str]:
        """Sample if there is one, otherwise the full file."""
        if self.sample_url:
            return self.sample_url
        return self.file_url

    @property
    def post_page_url(self) -> Optional[str]:
        base_url = self.source_base_url
        if not base_url:
            return None
        if "gelbooru" in base_url:
            return f"{base_url}/index.php?page=post&s=view&id={self.id}"
        if "konachan" in base_url or "yande.re" in base_url:
            return f"{base_url}/post/show/{self.id}"
        return f"{base_url}/posts/{self.id}"

    @property
    def formatted_file_size(self) -> str:
        if self.file_size is None:
            return ""
        size = float(self.file_size)
        for unit in ("bytes", "KB", "MB"):
            if size < 1000:
                return f"{int(size)} {unit}" if unit == "bytes" else f"{size:.1f} {unit}"
            size /= 1000
        return f"{size:.1f} GB"

    def with_source(self, source_id: str, source_base_url: str) -> "Post":
        return replace(self, source_id=source_id, source_base_url=source_base_url)

@dataclass(frozen=True)
class BooruSourceConfig:
    """Read-only view of a configured source. The store owns the persisted row."""
    name: str
    base_url: str
    api_type: BooruAPIType
    is_enabled: bool = True
    is_sfw: bool = True
    api_key: Optional[str] = None
    user_id: Optional[str] = None
    order: int = 0

DEFAULT_SOURCES: List[BooruSourceConfig] = [
    BooruSourceConfig("Safebooru", "https://safebooru.org", BooruAPIType.gelbooru, is_sfw=True, order=0),
    BooruSourceConfig("Danbooru", "https://danbooru.donmai.us", BooruAPIType.danbooru, is_sfw=False, order=1),
    # Gelbooru and Rule34 require an API key
    BooruSourceConfig("Gelbooru", "https://gelbooru.com", BooruAPIType.gelbooru, is_enabled=False, is_sfw=False, order=2),
    BooruSourceConfig("Konachan", "https://konachan.com", BooruAPIType.moebooru, is_sfw=False, order=3),
    BooruSourceConfig("Yande.re", "https://yande.re", BooruAPIType.moebooru, is_sfw=False, order=4),
    BooruSourceConfig("e621", "https://e621.net", BooruAPIType.e621, is_sfw=False, order=5),
    BooruSourceConfig("e926", "https://e926.net", BooruAPIType.e621, is_sfw=True, order=6),
    BooruSourceConfig("Rule34", "https://api.rule34.xxx", BooruAPIType.gelbooru, is_enabled=False, is_sfw=False, order=7),
]
