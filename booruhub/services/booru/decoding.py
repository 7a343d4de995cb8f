"""
Field extraction shared by the source adapters.

Each canonical field is read through an ordered list of JSON keys; the first
key whose value has the expected type wins, and the field falls back to its
default when none do. The key order is part of each family's contract, e.g.
Danbooru's preview is `preview_file_url` first and `preview_url` second.
"""

import zlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ...errors import DecodingError
from .types import ContentRating, Post, Tag, TagCategory

Keys = Tuple[str, ...]

def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None

def as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    return None

def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 with or without fractional seconds; anything else is None."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None

def first_of(data: Dict[str, Any], keys: Iterable[str], parse: Callable[[Any], Any]) -> Any:
    """Return the first parseable value among `keys`, in order, or None."""
    for key in keys:
        if key not in data:
            continue
        value = parse(data[key])
        if value is not None:
            return value
    return None

@dataclass(frozen=True)
class PostFields:
    """Ordered key lists for every canonical Post field of one source family."""
    width: Keys = ("image_width",)
    height: Keys = ("image_height",)
    tag_string: Keys = ("tag_string",)
    file_url: Keys = ("file_url",)
    preview_url: Keys = ("preview_url",)
    sample_url: Keys = ("sample_url",)
    score: Keys = ("score",)
    rating: Keys = ("rating",)
    created_at: Keys = ("created_at",)
    source: Keys = ("source",)
    file_ext: Keys = ("file_ext",)
    file_size: Keys = ("file_size",)
    uploader_name: Keys = ("uploader_name",)

def require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodingError(TypeError(f"expected a JSON object, got {type(data).__name__}"))
    return data

def require_list(data: Any) -> List[Any]:
    if not isinstance(data, list):
        raise DecodingError(TypeError(f"expected a JSON array, got {type(data).__name__}"))
    return data

def decode_post(data: Any, fields: PostFields, url_resolver: Optional[Callable[[Optional[str]], Optional[str]]] = None) -> Post:
    """Normalize one raw post object. Only `id` is mandatory."""
    data = require_object(data)
    post_id = as_int(data.get("id"))
    if post_id is None:
        raise DecodingError(KeyError("id"))

    resolve = url_resolver or (lambda url: url)
    file_ext = first_of(data, fields.file_ext, as_str)
    file_url = resolve(first_of(data, fields.file_url, as_str))
    if file_ext is None and file_url:
        file_ext = extension_of(file_url)

    return Post(
        id=post_id,
        created_at=first_of(data, fields.created_at, parse_datetime),
        score=first_of(data, fields.score, as_int) or 0,
        source=first_of(data, fields.source, as_str),
        rating=ContentRating.from_string(first_of(data, fields.rating, as_str)),
        image_width=first_of(data, fields.width, as_int) or 0,
        image_height=first_of(data, fields.height, as_int) or 0,
        tag_string=first_of(data, fields.tag_string, as_str) or "",
        file_url=file_url,
        preview_url=resolve(first_of(data, fields.preview_url, as_str)),
        sample_url=resolve(first_of(data, fields.sample_url, as_str)),
        file_ext=file_ext,
        file_size=first_of(data, fields.file_size, as_int),
        uploader_name=first_of(data, fields.uploader_name, as_str),
    )

def decode_posts(items: Sequence[Any], fields: PostFields, url_resolver=None) -> List[Post]:
    return [decode_post(item, fields, url_resolver) for item in items]

def extension_of(url: str) -> Optional[str]:
    path = url.split("?", 1)[0].rsplit("/", 1)[-1]
    if "." not in path:
        return None
    return path.rsplit(".", 1)[-1].lower() or None

def stable_tag_id(name: str) -> int:
    return zlib.crc32(name.encode("utf-8"))

def decode_tag(data: Any) -> Tag:
    """
    Normalize a tag object. Danbooru uses `category`/`post_count`, Gelbooru
    and Moebooru use `type`/`count`; the Danbooru names are tried first.
    """
    data = require_object(data)
    name = as_str(data.get("name"))
    if name is None:
        raise DecodingError(KeyError("name"))
    tag_id = as_int(data.get("id"))
    return Tag(
        id=tag_id if tag_id is not None else stable_tag_id(name),
        name=name,
        category=TagCategory.from_code(first_of(data, ("category", "type"), as_int)),
        post_count=first_of(data, ("post_count", "count"), as_int),
    )

def decode_tags(items: Sequence[Any]) -> List[Tag]:
    return [decode_tag(item) for item in items]
