"""Stored conversation threads: read and clear."""

from fastapi import APIRouter, Depends

from agent_labs.factory import ServiceFactory
from agent_labs.adapters.rest.dependencies import get_factory
from agent_labs.adapters.rest.schemas import (
    ThreadClearedOut,
    ThreadMessageOut,
    ThreadMessagesOut,
    ThreadSummaryOut,
)

router = APIRouter(prefix="/api/threads", tags=["threads"])


@router.get("", response_model=list[ThreadSummaryOut])
async def list_threads(factory: ServiceFactory = Depends(get_factory)):
    service = factory.create_thread_history_service()
    return [
        ThreadSummaryOut(
            thread_id=t.thread_id,
            message_count=t.message_count,
            last_timestamp=t.last_timestamp,
        )
        for t in await service.list_threads()
    ]


@router.get("/{thread_id}/messages", response_model=ThreadMessagesOut)
async def get_thread_messages(
    thread_id: str,
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_thread_history_service()
    thread = await service.get_thread(thread_id)
    return ThreadMessagesOut(
        thread_id=thread.thread_id,
        message_count=thread.message_count,
        messages=[
            ThreadMessageOut(
                key=m.key,
                timestamp=m.timestamp,
                role=m.role,
                message_text=m.message_text,
                serialized_message=m.serialized_message,
            )
            for m in thread.messages
        ],
    )


@router.delete("/{thread_id}", response_model=ThreadClearedOut)
async def clear_thread(
    thread_id: str,
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_thread_history_service()
    removed = await service.clear(thread_id)
    return ThreadClearedOut(thread_id=thread_id, deleted_count=removed)
