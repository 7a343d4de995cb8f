from typing import Iterable

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base
from .services.booru.types import BooruAPIType, BooruSourceConfig, ContentRating, Post, Tag

class BooruSource(Base):
    __tablename__ = 'booruhub_sources'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    base_url = Column(String(500), nullable=False)
    api_type = Column(Enum(BooruAPIType), nullable=False)
    is_enabled = Column(Boolean, default=True)
    is_sfw = Column(Boolean, default=True)
    api_key = Column(String(255), nullable=True)
    user_id = Column(String(255), nullable=True)
    order = Column(Integer, default=0, index=True)

    def to_config(self) -> BooruSourceConfig:
        """Immutable snapshot handed to the adapters."""
        return BooruSourceConfig(
            name=self.name,
            base_url=self.base_url,
            api_type=BooruAPIType(self.api_type),
            is_enabled=bool(self.is_enabled),
            is_sfw=bool(self.is_sfw),
            api_key=self.api_key,
            user_id=self.user_id,
            order=self.order or 0,
        )

class FavoritePost(Base):
    __tablename__ = 'booruhub_favorite_posts'
    __table_args__ = (UniqueConstraint('post_id', 'source_id', name='uq_favorite_post_source'),)

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, nullable=False, index=True)
    source_id = Column(String(100), nullable=False, index=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Cached post data
    thumbnail_url = Column(String(1000), nullable=True)
    sample_url = Column(String(1000), nullable=True)
    full_url = Column(String(1000), nullable=True)
    image_width = Column(Integer, default=0)
    image_height = Column(Integer, default=0)
    rating = Column(String(20), default=ContentRating.safe.value)
    tag_string = Column(Text, default="")
    score = Column(Integer, default=0)

    collection_ids = Column(JSON, default=list)

    @classmethod
    def from_post(cls, post: Post, source_id: str) -> "FavoritePost":
        return cls(
            post_id=post.id,
            source_id=source_id,
            thumbnail_url=post.preview_url,
            sample_url=post.sample_url,
            full_url=post.file_url,
            image_width=post.image_width,
            image_height=post.image_height,
            rating=post.rating.value,
            tag_string=post.tag_string,
            score=post.score,
            collection_ids=[],
        )

    def as_post(self) -> Post:
        return Post(
            id=self.post_id,
            score=self.score or 0,
            rating=ContentRating.from_string(self.rating),
            image_width=self.image_width or 0,
            image_height=self.image_height or 0,
            tag_string=self.tag_string or "",
            file_url=self.full_url,
            preview_url=self.thumbnail_url,
            sample_url=self.sample_url,
            source_id=self.source_id,
        )

class Collection(Base):
    __tablename__ = 'booruhub_collections'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    order = Column(Integer, default=0)

class FavoriteTag(Base):
    __tablename__ = 'booruhub_favorite_tags'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    category = Column(Integer, default=0)
    usage_count = Column(Integer, default=0)
    added_at = Column(DateTime(timezone=True), server_default=func.now())
    order = Column(Integer, default=0)

    @classmethod
    def from_tag(cls, tag: Tag) -> "FavoriteTag":
        return cls(name=tag.name, display_name=tag.display_name, category=int(tag.category))

class UserPreferences(Base):
    __tablename__ = 'booruhub_preferences'

    id = Column(Integer, primary_key=True, index=True)

    # Content filtering
    show_safe_content = Column(Boolean, default=True)
    show_questionable_content = Column(Boolean, default=False)
    show_explicit_content = Column(Boolean, default=False)
    blur_nsfw_thumbnails = Column(Boolean, default=True)

    blacklisted_tags = Column(JSON, default=list)

    search_history = Column(JSON, default=list)
    max_search_history_count = Column(Integer, default=50)

    active_source_id = Column(String(100), nullable=True)

    def should_show(self, rating: ContentRating) -> bool:
        rating = ContentRating(rating)
        if rating in (ContentRating.safe, ContentRating.general):
            return bool(self.show_safe_content)
        if rating in (ContentRating.questionable, ContentRating.sensitive):
            return bool(self.show_questionable_content)
        return bool(self.show_explicit_content)

    def contains_blacklisted_tag(self, tags: Iterable[str]) -> bool:
        blacklist = {tag.lower() for tag in (self.blacklisted_tags or [])}
        return any(tag.lower() in blacklist for tag in tags)

    def add_to_search_history(self, term: str):
        """Most recent first, case-insensitive de-duplication, capped."""
        trimmed = term.strip()
        if not trimmed:
            return
        history = [item for item in (self.search_history or []) if item.lower() != trimmed.lower()]
        history.insert(0, trimmed)
        limit = self.max_search_history_count or 50
        # reassign so the JSON column is flagged dirty
        self.search_history = history[:limit]
