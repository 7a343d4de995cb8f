from typing import List, Optional

from sqlalchemy.orm import Session

from .models import BooruSource, Collection, FavoritePost, FavoriteTag, UserPreferences
from .services.booru.types import DEFAULT_SOURCES, Post, Tag

def seed_default_sources(db: Session) -> int:
    """Insert the default source list, only into an empty table."""
    if db.query(BooruSource).first() is not None:
        return 0
    for config in DEFAULT_SOURCES:
        db.add(BooruSource(
            name=config.name,
            base_url=config.base_url,
            api_type=config.api_type,
            is_enabled=config.is_enabled,
            is_sfw=config.is_sfw,
            api_key=config.api_key,
            user_id=config.user_id,
            order=config.order,
        ))
    db.commit()
    return len(DEFAULT_SOURCES)

def list_sources(db: Session, enabled_only: bool = False) -> List[BooruSource]:
    query = db.query(BooruSource)
    if enabled_only:
        query = query.filter(BooruSource.is_enabled.is_(True))
    return query.order_by(BooruSource.order).all()

def get_source(db: Session, name: str) -> Optional[BooruSource]:
    return db.query(BooruSource).filter(BooruSource.name == name).first()

def get_favorite(db: Session, post_id: int, source_id: str) -> Optional[FavoritePost]:
    return db.query(FavoritePost).filter(
        FavoritePost.post_id == post_id,
        FavoritePost.source_id == source_id,
    ).first()

def is_favorite(db: Session, post_id: int, source_id: str) -> bool:
    return get_favorite(db, post_id, source_id) is not None

def add_favorite(db: Session, post: Post, source_id: str) -> FavoritePost:
    """Save a post as favorite. Adding the same (post id, source) twice returns the existing row."""
    existing = get_favorite(db, post.id, source_id)
    if existing is not None:
        return existing
    favorite = FavoritePost.from_post(post, source_id)
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    return favorite

def remove_favorite(db: Session, post_id: int, source_id: str) -> bool:
    favorite = get_favorite(db, post_id, source_id)
    if favorite is None:
        return False
    db.delete(favorite)
    db.commit()
    return True

def list_favorites(db: Session, collection_id: Optional[int] = None) -> List[FavoritePost]:
    favorites = db.query(FavoritePost).order_by(FavoritePost.added_at.desc(), FavoritePost.id.desc()).all()
    if collection_id is None:
        return favorites
    return [f for f in favorites if collection_id in (f.collection_ids or [])]

def create_collection(db: Session, name: str) -> Collection:
    order = db.query(Collection).count()
    collection = Collection(name=name, order=order)
    db.add(collection)
    db.commit()
    db.refresh(collection)
    return collection

def get_collection(db: Session, collection_id: int) -> Optional[Collection]:
    return db.query(Collection).filter(Collection.id == collection_id).first()

def list_collections(db: Session) -> List[Collection]:
    return db.query(Collection).order_by(Collection.order).all()

def add_to_collection(db: Session, favorite: FavoritePost, collection: Collection):
    ids = list(favorite.collection_ids or [])
    if collection.id not in ids:
        ids.append(collection.id)
        favorite.collection_ids = ids
        db.commit()

def add_favorite_tag(db: Session, tag: Tag) -> FavoriteTag:
    existing = db.query(FavoriteTag).filter(FavoriteTag.name == tag.name).first()
    if existing is not None:
        return existing
    favorite = FavoriteTag.from_tag(tag)
    favorite.order = db.query(FavoriteTag).count()
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    return favorite

def list_favorite_tags(db: Session) -> List[FavoriteTag]:
    return db.query(FavoriteTag).order_by(FavoriteTag.order).all()

def get_preferences(db: Session) -> UserPreferences:
    """The single preferences row, created with defaults on first access."""
    preferences = db.query(UserPreferences).first()
    if preferences is None:
        preferences = UserPreferences()
        db.add(preferences)
        db.commit()
        db.refresh(preferences)
    return preferences
