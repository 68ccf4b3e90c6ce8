from typing import List, Optional

from fastapi import APIRouter, Depends

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.api.schemas import MessageCreateRequest, ThreadCreateRequest
from lostfound.domain.models import Message, Thread, ThreadStatus

router = APIRouter()


@router.post("", response_model=Thread, status_code=201)
def create_thread(
    payload: ThreadCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.create_thread(payload.listing_id, user_id)


@router.get("", response_model=List[Thread])
def list_threads(
    status: Optional[ThreadStatus] = None,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.list_threads(user_id, status=status)


@router.get("/{thread_id}", response_model=Thread)
def get_thread(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.get_thread(thread_id, user_id)


@router.post("/{thread_id}/approve", response_model=Thread)
def approve_thread(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.approve(thread_id, user_id)


@router.post("/{thread_id}/close", response_model=Thread)
def close_thread(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.close_thread(thread_id, user_id)


@router.post("/{thread_id}/messages", response_model=Message, status_code=201)
def post_message(
    thread_id: str,
    payload: MessageCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.post_message(thread_id, user_id, payload.body)


@router.get("/{thread_id}/messages", response_model=List[Message])
def list_messages(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.threads.list_messages(thread_id, user_id)
