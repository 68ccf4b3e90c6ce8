from fastapi import APIRouter, Depends, Query

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.domain.models import Confirmation

router = APIRouter()


@router.post("/generate", response_model=Confirmation, status_code=201)
def generate_confirmation(
    thread_id: str = Query(..., alias="threadId"),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.confirmations.generate(thread_id, user_id)


@router.post("/validate", response_model=Confirmation)
def validate_confirmation(
    code: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.confirmations.validate(code, user_id)


@router.get("/thread/{thread_id}", response_model=Confirmation)
def get_thread_confirmation(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.confirmations.get_for_thread(thread_id, user_id)
