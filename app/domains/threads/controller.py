"""Thread and message API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.core.dependencies import get_current_user, get_thread_service, validate_token
from app.domains.threads.service import ThreadService
from app.schemas.base import ResponseSchema
from app.schemas.chat import MessageCreate, ThreadCreate, ThreadUpdate
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/threads",
    tags=["threads"],
    dependencies=[Depends(validate_token)],
)


@router.get("", response_model=ResponseSchema)
async def list_threads(
    limit: int | None = Query(None, ge=1, description="Maximum number of threads"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """List the current user's threads, most recently updated first.

    Args:
        limit: Maximum number of threads
        current_user: Current authenticated user
        service: Thread service

    Returns:
        Thread summaries with last-message preview and message count
    """
    result = await service.list_threads(user_id=current_user.id, limit=limit)
    return ResponseSchema(
        status="success",
        message="Threads retrieved successfully",
        data=result.model_dump(mode="json"),
    )


@router.post("", response_model=ResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_thread(
    thread_data: ThreadCreate | None = Body(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Create a new thread for the current user."""
    title = thread_data.title if thread_data else None
    thread = await service.create_thread(user_id=current_user.id, title=title)
    return ResponseSchema(
        status="success",
        message="Thread created successfully",
        data=thread.model_dump(mode="json"),
    )


@router.get("/latest", response_model=ResponseSchema)
async def get_latest_thread(
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Get the most recently updated thread, or ``data: null`` if there is none."""
    thread = await service.get_latest_thread(user_id=current_user.id)
    return ResponseSchema(
        status="success",
        message="Latest thread retrieved successfully" if thread else "No threads yet",
        data=thread.model_dump(mode="json") if thread else None,
    )


@router.get("/{thread_id}", response_model=ResponseSchema)
async def get_thread(
    thread_id: UUID = Path(..., description="Thread ID"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Get a specific thread.

    Raises:
        ThreadNotFoundError: If the thread is missing or owned by another user
    """
    thread = await service.get_thread(thread_id=thread_id, user_id=current_user.id)
    return ResponseSchema(
        status="success",
        message="Thread retrieved successfully",
        data=thread.model_dump(mode="json"),
    )


@router.patch("/{thread_id}", response_model=ResponseSchema)
async def rename_thread(
    thread_id: UUID = Path(..., description="Thread ID"),
    thread_data: ThreadUpdate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Rename a thread."""
    thread = await service.rename_thread(
        thread_id=thread_id, user_id=current_user.id, title=thread_data.title
    )
    return ResponseSchema(
        status="success",
        message="Thread updated successfully",
        data=thread.model_dump(mode="json"),
    )


@router.delete("/{thread_id}", response_model=ResponseSchema)
async def delete_thread(
    thread_id: UUID = Path(..., description="Thread ID"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Delete a thread together with its messages."""
    await service.delete_thread(thread_id=thread_id, user_id=current_user.id)
    return ResponseSchema(
        status="success",
        message="Thread deleted successfully",
        data=None,
    )


@router.post("/{thread_id}/touch", response_model=ResponseSchema)
async def touch_thread(
    thread_id: UUID = Path(..., description="Thread ID"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Mark a thread as updated now."""
    thread = await service.touch_thread(thread_id=thread_id, user_id=current_user.id)
    return ResponseSchema(
        status="success",
        message="Thread timestamp updated",
        data=thread.model_dump(mode="json"),
    )


@router.get("/{thread_id}/messages", response_model=ResponseSchema)
async def list_messages(
    thread_id: UUID = Path(..., description="Thread ID"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Get all messages of a thread, oldest first."""
    messages = await service.list_messages(thread_id=thread_id, user_id=current_user.id)
    return ResponseSchema(
        status="success",
        message="Messages retrieved successfully",
        data=[message.model_dump(mode="json") for message in messages],
    )


@router.post(
    "/{thread_id}/messages",
    response_model=ResponseSchema,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(
    thread_id: UUID = Path(..., description="Thread ID"),
    message_data: MessageCreate = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    service: ThreadService = Depends(get_thread_service),
):
    """Persist one message in a thread.

    Repeating a request with the same message ``id`` returns the stored
    message unchanged.
    """
    message = await service.add_message(
        thread_id=thread_id, user_id=current_user.id, payload=message_data
    )
    logger.info(f"Stored {message.sender.value} message {message.id} in thread {thread_id}")
    return ResponseSchema(
        status="success",
        message="Message saved successfully",
        data=message.model_dump(mode="json"),
    )
