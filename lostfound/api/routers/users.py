from typing import List

from fastapi import APIRouter, Depends

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.api.schemas import ContactUpdateRequest, UserRegisterRequest
from lostfound.domain.models import Listing, User

router = APIRouter()


@router.post("", response_model=User, status_code=201)
def register_profile(
    payload: UserRegisterRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    # The profile id is the token subject
    return services.users.register(
        name=payload.name,
        email=str(payload.email),
        phone=payload.phone,
        user_id=user_id,
    )


@router.get("/me", response_model=User)
def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.users.get_user(user_id)


@router.patch("/me/contact", response_model=User)
def update_my_contact(
    payload: ContactUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.users.update_contact(
        user_id, phone=payload.phone, email_verified=payload.email_verified
    )


@router.get("/me/listings", response_model=List[Listing])
def get_my_listings(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.listings.get_user_listings(user_id)
