"""HTTP API routes for tags, tag categories and life sections."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.note import TagNotes
from ...models.tags import CategorizeTagsRequest, LifeSection, TagCategories
from ...services.categorizer import CategorizationError
from ...services.tag_service import TagService
from ..dependencies import get_tag_service
from ..middleware import AuthContext, get_auth_context

logger = logging.getLogger(__name__)

router = APIRouter()


def _categorization_failed(exc: CategorizationError, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": exc.error, "message": message},
    )


@router.get("/api/tags", response_model=List[TagNotes])
async def list_tags(
    auth: AuthContext = Depends(get_auth_context),
    tags: TagService = Depends(get_tag_service),
):
    """Every tag with the notes carrying it, most used first."""
    return tags.list_tags(auth.user_id)


@router.get("/api/tags/categories", response_model=TagCategories)
async def get_tag_categories(
    auth: AuthContext = Depends(get_auth_context),
    tags: TagService = Depends(get_tag_service),
):
    return tags.get_categories(auth.user_id)


@router.post("/api/tags/categorize", response_model=TagCategories)
async def categorize_tags(
    request: CategorizeTagsRequest,
    auth: AuthContext = Depends(get_auth_context),
    tags: TagService = Depends(get_tag_service),
):
    """Group tags into categories and cache the grouping."""
    try:
        return await tags.categorize(auth.user_id, request.tags)
    except CategorizationError as exc:
        raise _categorization_failed(exc, "Failed to categorize tags") from exc


@router.post("/api/categories/organize", response_model=TagCategories)
async def organize_categories(
    auth: AuthContext = Depends(get_auth_context),
    tags: TagService = Depends(get_tag_service),
):
    """Sort the cached categories into life sections."""
    try:
        return await tags.organize(auth.user_id)
    except CategorizationError as exc:
        raise _categorization_failed(exc, "Failed to organize categories") from exc


@router.get("/api/tags/sections", response_model=List[LifeSection])
async def list_life_sections(
    auth: AuthContext = Depends(get_auth_context),
    tags: TagService = Depends(get_tag_service),
):
    return tags.life_sections(auth.user_id)


__all__ = ["router"]
