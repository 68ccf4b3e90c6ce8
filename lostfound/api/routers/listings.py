from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.api.schemas import ListingCreateRequest, ListingUpdateRequest, PageResponse
from lostfound.domain.models import Listing

router = APIRouter()


@router.post("", response_model=Listing, status_code=201)
def create_listing(
    payload: ListingCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.listings.create_listing(user_id, **payload.model_dump())


@router.get("", response_model=PageResponse[Listing])
def search_listings(
    q: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    services: ServiceContainer = Depends(get_services),
):
    result = services.listings.search(
        query=q,
        category=category,
        location=location,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=size,
    )
    return PageResponse[Listing].from_page(result)


@router.get("/{listing_id}", response_model=Listing)
def get_listing(listing_id: str, services: ServiceContainer = Depends(get_services)):
    return services.listings.get_listing(listing_id)


@router.put("/{listing_id}", response_model=Listing)
def update_listing(
    listing_id: str,
    payload: ListingUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.listings.update_listing(
        listing_id, user_id, **payload.model_dump(exclude_unset=True)
    )


@router.delete("/{listing_id}", status_code=204)
def delete_listing(
    listing_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    services.listings.delete_listing(listing_id, user_id)
    return Response(status_code=204)
