"""Gift lookup and link resolution API routes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from giftplanner import media
from giftplanner.media import AnimationLoader
from giftplanner.resolver import GiftResolver, Resolution

from .. import schemas

router = APIRouter(prefix="/api", tags=["gifts"])


def get_resolver(request: Request) -> GiftResolver:
    """FastAPI dependency returning the resolver created for this session."""

    return request.app.state.resolver


def get_animations(request: Request) -> AnimationLoader:
    return request.app.state.animations


def _resolution_to_schema(resolution: Resolution) -> schemas.ResolutionRead:
    record = resolution.record
    image_url = None
    animation = None
    if record is not None:
        image_url = media.gift_image_url(record.gift, record.model, resolution.gift_id)
        animation = media.animation_url(record.gift, record.model, resolution.gift_id)
    return schemas.ResolutionRead(
        state=resolution.state.value,
        status=resolution.status,
        record=schemas.ResolvedRecordRead(**record.as_dict()) if record else None,
        gift_id=resolution.gift_id,
        image_url=image_url,
        animation_url=animation,
        models=[schemas.CatalogEntry(**entry) for entry in resolution.models],
        patterns=[schemas.CatalogEntry(**entry) for entry in resolution.patterns],
    )


@router.get("/resolve", response_model=schemas.ResolutionRead)
async def resolve_link(
    link: str = Query(..., min_length=1),
    resolver: GiftResolver = Depends(get_resolver),
) -> schemas.ResolutionRead:
    resolution = await resolver.resolve_link(link)
    if resolution.record is None:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, resolution.status)
    return _resolution_to_schema(resolution)


@router.get("/gifts", response_model=List[str])
async def list_gifts(resolver: GiftResolver = Depends(get_resolver)) -> List[str]:
    return await resolver.catalog.list_gifts()


@router.get("/gifts/{name}", response_model=schemas.ResolutionRead)
async def gift_detail(
    name: str, resolver: GiftResolver = Depends(get_resolver)
) -> schemas.ResolutionRead:
    resolution = await resolver.resolve_name(name)
    return _resolution_to_schema(resolution)


@router.get("/animation", response_model=Dict[str, Any])
async def gift_animation(
    gift: str = Query(..., min_length=1),
    model: Optional[str] = None,
    gift_id: Optional[str] = None,
    animations: AnimationLoader = Depends(get_animations),
) -> Dict[str, Any]:
    """Return the decoded Lottie document for a model or the original gift."""

    if not model and not gift_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Either model or gift_id is required")
    animation = await animations.load(gift, model, gift_id)
    if animation is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Animation not available")
    return animation
