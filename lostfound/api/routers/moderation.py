from typing import Optional

from fastapi import APIRouter, Depends, Query

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.api.schemas import FlagCreateRequest, PageResponse
from lostfound.domain.models import ModerationFlag, ModerationStats

router = APIRouter()


@router.post("/flags", response_model=ModerationFlag, status_code=201)
def create_flag(
    payload: FlagCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.moderation.create_flag(
        user_id,
        entity_type=payload.entity_type,
        entity_id=payload.entity_id,
        reason=payload.reason,
        description=payload.description,
        priority=payload.priority,
    )


@router.get("/flags", response_model=PageResponse[ModerationFlag])
def list_flags(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    entity_type: Optional[str] = Query(None, alias="entityType"),
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    result = services.moderation.list_flags(
        user_id,
        status=status,
        priority=priority,
        entity_type=entity_type,
        page=page,
        page_size=size,
    )
    return PageResponse[ModerationFlag].from_page(result)


@router.patch("/flags/{flag_id}/approve", response_model=ModerationFlag)
def approve_flag(
    flag_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.moderation.approve_flag(flag_id, user_id)


@router.patch("/flags/{flag_id}/reject", response_model=ModerationFlag)
def reject_flag(
    flag_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.moderation.reject_flag(flag_id, user_id)


@router.get("/stats", response_model=ModerationStats)
def get_stats(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.moderation.get_stats(user_id)
