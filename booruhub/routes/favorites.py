from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    CollectionCreate,
    CollectionResponse,
    FavoriteCreate,
    FavoriteResponse,
    FavoriteTagCreate,
    PostResponse,
)
from ..services.booru import BooruService, Tag, get_booru_service
from ..services.booru.decoding import stable_tag_id
from .. import store
from .posts import resolve_source

router = APIRouter(prefix="/api/favorites", tags=["favorites"])

@router.get("", response_model=List[FavoriteResponse])
async def get_favorites(collection_id: Optional[int] = None, db: Session = Depends(get_db)):
    """List favorites, newest first"""
    return store.list_favorites(db, collection_id=collection_id)

@router.get("/posts", response_model=List[PostResponse])
async def get_favorite_posts(db: Session = Depends(get_db)):
    """Favorites rebuilt as posts for display"""
    return [PostResponse.model_validate(f.as_post()) for f in store.list_favorites(db)]

@router.post("", response_model=FavoriteResponse)
async def add_favorite(
    req: FavoriteCreate,
    db: Session = Depends(get_db),
    service: BooruService = Depends(get_booru_service),
):
    """Fetch the post from its source and save it"""
    config = resolve_source(db, req.source)
    post = await service.fetch_post(req.post_id, config)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return store.add_favorite(db, post, config.name)

@router.delete("/{source}/{post_id}")
async def remove_favorite(source: str, post_id: int, db: Session = Depends(get_db)):
    if not store.remove_favorite(db, post_id, source):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"message": "Favorite removed"}

@router.get("/collections", response_model=List[CollectionResponse])
async def get_collections(db: Session = Depends(get_db)):
    return store.list_collections(db)

@router.post("/collections", response_model=CollectionResponse)
async def create_collection(req: CollectionCreate, db: Session = Depends(get_db)):
    return store.create_collection(db, req.name)

@router.put("/collections/{collection_id}/{source}/{post_id}", response_model=FavoriteResponse)
async def add_to_collection(collection_id: int, source: str, post_id: int, db: Session = Depends(get_db)):
    """File an existing favorite into a collection"""
    collection = store.get_collection(db, collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    favorite = store.get_favorite(db, post_id, source)
    if favorite is None:
        raise HTTPException(status_code=404, detail="Favorite not found")
    store.add_to_collection(db, favorite, collection)
    return favorite

@router.get("/tags")
async def get_favorite_tags(db: Session = Depends(get_db)):
    return [
        {"name": t.name, "display_name": t.display_name, "category": t.category}
        for t in store.list_favorite_tags(db)
    ]

@router.post("/tags")
async def add_favorite_tag(req: FavoriteTagCreate, db: Session = Depends(get_db)):
    tag = Tag(id=stable_tag_id(req.name), name=req.name, category=req.category)
    favorite = store.add_favorite_tag(db, tag)
    return {"name": favorite.name, "display_name": favorite.display_name, "category": favorite.category}
