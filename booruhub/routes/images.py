from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..utils.image_cache import ImageCache, get_image_cache

router = APIRouter(prefix="/api/images", tags=["images"])

@router.get("")
async def get_image(
    url: str = Query(..., min_length=1),
    cache: ImageCache = Depends(get_image_cache),
):
    """Serve an image through the memory/disk cache"""
    data = await cache.load(url)
    return Response(content=data, media_type="image/jpeg")

@router.delete("")
async def clear_images(cache: ImageCache = Depends(get_image_cache)):
    """Drop every cached image"""
    await cache.clear()
    return {"message": "Image cache cleared"}
