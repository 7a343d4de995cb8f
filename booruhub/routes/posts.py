from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas import PostListResponse, PostResponse
from ..services.booru import BooruService, BooruSourceConfig, get_booru_service
from ..services.gallery import fetch_from_all_sources, filter_visible
from .. import store

router = APIRouter(prefix="/api/posts", tags=["posts"])

ALL_SOURCES = "all"

def resolve_source(db: Session, name: str) -> BooruSourceConfig:
    source = store.get_source(db, name)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Unknown source: {name}")
    return source.to_config()

@router.get("", response_model=PostListResponse)
async def get_posts(
    source: str = Query(..., description="Source name, or 'all' to query every enabled source"),
    tags: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=200),
    db: Session = Depends(get_db),
    service: BooruService = Depends(get_booru_service),
):
    """Fetch a page of posts, filtered by the stored rating flags and blacklist"""
    preferences = store.get_preferences(db)
    if tags:
        preferences.add_to_search_history(tags)
        db.commit()

    if source == ALL_SOURCES:
        sources = [s.to_config() for s in store.list_sources(db, enabled_only=True)]
        posts = await fetch_from_all_sources(service, sources, tags=tags, limit=limit or settings.MULTI_SOURCE_LIMIT)
        return PostListResponse(
            posts=[PostResponse.model_validate(p) for p in filter_visible(posts, preferences)],
            page=1,
            has_more=False,
        )

    config = resolve_source(db, source)
    limit = limit or settings.POSTS_PER_PAGE
    posts = await service.fetch_posts(config, tags=tags, page=page, limit=limit)
    return PostListResponse(
        posts=[PostResponse.model_validate(p) for p in filter_visible(posts, preferences)],
        page=page,
        has_more=len(posts) >= limit,
    )

@router.get("/{source}/{post_id}", response_model=PostResponse)
async def get_post(
    source: str,
    post_id: int,
    db: Session = Depends(get_db),
    service: BooruService = Depends(get_booru_service),
):
    """Fetch a single post"""
    config = resolve_source(db, source)
    post = await service.fetch_post(post_id, config)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostResponse.model_validate(post)
