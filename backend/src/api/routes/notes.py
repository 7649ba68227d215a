"""HTTP API routes for note operations."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ...models.note import Note, NoteCreate, NoteUpdate, RegenerateRequest, UrlNoteRequest
from ...services.note_service import NoteProcessingError, NoteService
from ...services.note_store import NoteNotFoundError
from ..dependencies import get_note_service
from ..middleware import AuthContext, get_auth_context, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _not_found(exc: NoteNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": exc.error, "message": exc.message},
    )


@router.get("/api/notes", response_model=List[Note])
async def list_notes(
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """List the caller's notes, newest first."""
    return notes.list_notes(auth.user_id)


@router.post("/api/notes", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note(
    create: NoteCreate,
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """Categorize and store a new text note."""
    try:
        return await notes.submit(auth.user_id, create.content)
    except NoteProcessingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/api/notes/url", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note_from_url(
    request: UrlNoteRequest,
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """Fetch a web page, summarize it and store the summary as a note."""
    try:
        return await notes.create_from_url(auth.user_id, request.url)
    except NoteProcessingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/api/notes/image", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note_from_image(
    image: UploadFile = File(...),
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """Describe an uploaded image and store the description as a note."""
    data = await image.read(MAX_IMAGE_BYTES + 1)
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"error": "payload_too_large", "message": "Image exceeds 10 MB"},
        )
    try:
        return await notes.create_from_image(
            auth.user_id,
            image.filename or "upload",
            data,
            image.content_type or "",
        )
    except NoteProcessingError as exc:
        raise to_http_exception(exc) from exc


@router.get("/api/notes/{note_id}", response_model=Note)
async def get_note(
    note_id: str,
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    try:
        return notes.get(auth.user_id, note_id)
    except NoteNotFoundError as exc:
        raise _not_found(exc) from exc


@router.patch("/api/notes/{note_id}", response_model=Note)
async def update_note(
    note_id: str,
    changes: NoteUpdate,
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """Edit content, category or tags. Omitted fields are left unchanged."""
    try:
        return notes.edit(auth.user_id, note_id, changes)
    except NoteNotFoundError as exc:
        raise _not_found(exc) from exc
    except NoteProcessingError as exc:
        raise to_http_exception(exc) from exc


@router.post("/api/notes/{note_id}/regenerate", response_model=Note)
async def regenerate_note_metadata(
    note_id: str,
    request: RegenerateRequest,
    auth: AuthContext = Depends(get_auth_context),
    notes: NoteService = Depends(get_note_service),
):
    """Ask the language model for fresh tags or a fresh title."""
    try:
        return await notes.regenerate(auth.user_id, note_id, request.type)
    except NoteNotFoundError as exc:
        raise _not_found(exc) from exc
    except NoteProcessingError as exc:
        raise to_http_exception(exc) from exc


__all__ = ["router"]
