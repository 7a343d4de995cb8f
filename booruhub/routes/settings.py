from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import PreferencesResponse, PreferencesUpdate, SourceResponse
from .. import store

router = APIRouter(prefix="/api", tags=["settings"])

@router.get("/sources", response_model=List[SourceResponse])
async def get_sources(enabled_only: bool = False, db: Session = Depends(get_db)):
    """Configured sources in display order"""
    return store.list_sources(db, enabled_only=enabled_only)

@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(db: Session = Depends(get_db)):
    return store.get_preferences(db)

@router.patch("/preferences", response_model=PreferencesResponse)
async def update_preferences(update: PreferencesUpdate, db: Session = Depends(get_db)):
    preferences = store.get_preferences(db)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(preferences, field, value)
    db.commit()
    db.refresh(preferences)
    return preferences
