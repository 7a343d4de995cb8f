from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .services.booru.types import BooruAPIType, ContentRating, TagCategory

# Source Schemas
class SourceResponse(BaseModel):
    name: str
    base_url: str
    api_type: BooruAPIType
    is_enabled: bool
    is_sfw: bool
    order: int

    model_config = ConfigDict(from_attributes=True)

# Post Schemas
class PostResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    score: int = 0
    source: Optional[str] = None
    rating: ContentRating = ContentRating.safe
    image_width: int = 0
    image_height: int = 0
    tags: List[str] = []
    file_url: Optional[str] = None
    preview_url: Optional[str] = None
    sample_url: Optional[str] = None
    file_ext: Optional[str] = None
    file_size: Optional[int] = None
    is_animated: bool = False
    aspect_ratio: float = 1.0
    source_id: Optional[str] = None
    source_base_url: Optional[str] = None
    post_page_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class PostListResponse(BaseModel):
    posts: List[PostResponse]
    page: int
    has_more: bool

# Tag Schemas
class TagResponse(BaseModel):
    id: int
    name: str
    display_name: str
    category: TagCategory
    post_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

# Favorite Schemas
class FavoriteCreate(BaseModel):
    source: str
    post_id: int

class FavoriteResponse(BaseModel):
    id: int
    post_id: int
    source_id: str
    added_at: Optional[datetime] = None
    thumbnail_url: Optional[str] = None
    full_url: Optional[str] = None
    rating: str
    score: int

    model_config = ConfigDict(from_attributes=True)

class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

class CollectionResponse(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class FavoriteTagCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: TagCategory = TagCategory.general

# Preference Schemas
class PreferencesUpdate(BaseModel):
    show_safe_content: Optional[bool] = None
    show_questionable_content: Optional[bool] = None
    show_explicit_content: Optional[bool] = None
    blacklisted_tags: Optional[List[str]] = None

class PreferencesResponse(BaseModel):
    show_safe_content: bool
    show_questionable_content: bool
    show_explicit_content: bool
    blacklisted_tags: List[str] = []
    search_history: List[str] = []

    model_config = ConfigDict(from_attributes=True)

class ErrorResponse(BaseModel):
    detail: str
    error: str
    retryable: bool
    retry_after: Optional[float] = None
