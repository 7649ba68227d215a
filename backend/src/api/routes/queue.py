"""Email processing queue routes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...models.email import EmailQueueItem, EmailStatus, QueuePromotion
from ...services.email_queue import EmailQueueError, EmailQueueService
from ..dependencies import get_email_queue_service
from ..middleware import AuthContext, get_auth_context, to_http_exception

router = APIRouter()


@router.get("/api/queue", response_model=List[EmailQueueItem])
async def list_queue(
    status: Optional[EmailStatus] = Query(None, description="Only items in this state"),
    auth: AuthContext = Depends(get_auth_context),
    queue: EmailQueueService = Depends(get_email_queue_service),
):
    """Queued emails, newest first."""
    return queue.list_items(auth.user_id, status)


@router.get("/api/queue/{item_id}", response_model=EmailQueueItem)
async def get_queue_item(
    item_id: str,
    auth: AuthContext = Depends(get_auth_context),
    queue: EmailQueueService = Depends(get_email_queue_service),
):
    try:
        return queue.get_item(auth.user_id, item_id)
    except EmailQueueError as exc:
        raise to_http_exception(exc) from exc


@router.post("/api/queue/{item_id}/process", response_model=QueuePromotion)
async def process_queue_item(
    item_id: str,
    auth: AuthContext = Depends(get_auth_context),
    queue: EmailQueueService = Depends(get_email_queue_service),
):
    """Analyze a queued email and turn it into a note."""
    try:
        item, note = await queue.promote(auth.user_id, item_id)
    except EmailQueueError as exc:
        raise to_http_exception(exc) from exc
    return QueuePromotion(item=item, note=note)


__all__ = ["router"]
