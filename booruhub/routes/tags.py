from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import TagResponse
from ..services.booru import BooruService, get_booru_service
from .posts import resolve_source

router = APIRouter(prefix="/api/tags", tags=["tags"])

@router.get("", response_model=List[TagResponse])
async def search_tags(
    source: str,
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    service: BooruService = Depends(get_booru_service),
):
    """Search tags on one source"""
    config = resolve_source(db, source)
    tags = await service.search_tags(q, config, limit=limit)
    return [TagResponse.model_validate(t) for t in tags]

@router.get("/autocomplete", response_model=List[TagResponse])
async def autocomplete_tags(
    source: str,
    q: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    service: BooruService = Depends(get_booru_service),
):
    """Autocomplete tag suggestions, sorted artist > copyright > character > general > meta"""
    config = resolve_source(db, source)
    tags = await service.autocomplete(q, config)
    tags = sorted(tags, key=lambda t: t.category.sort_order)
    return [TagResponse.model_validate(t) for t in tags]
