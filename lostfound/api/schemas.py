"""Request and response bodies of the HTTP API."""

from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field

from lostfound.domain.models import ListingCategory, NotificationChannel
from lostfound.services import Page

T = TypeVar("T")


class UserRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = None


class ContactUpdateRequest(BaseModel):
    phone: Optional[str] = None
    email_verified: Optional[bool] = None


class ListingCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: ListingCategory
    location_text: str = Field(..., min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    found_at: datetime
    description: str = Field(..., min_length=1)
    image_url: Optional[str] = None


class ListingUpdateRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[ListingCategory] = None
    location_text: Optional[str] = Field(None, min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    found_at: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None


class AlertCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    query_text: Optional[str] = None
    category: Optional[str] = None
    location_text: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    channels: List[NotificationChannel] = Field(default_factory=list)


class AlertUpdateRequest(BaseModel):
    """Partial update; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    query_text: Optional[str] = None
    category: Optional[str] = None
    location_text: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    channels: Optional[List[NotificationChannel]] = None


class ThreadCreateRequest(BaseModel):
    listing_id: str = Field(..., min_length=1)


class MessageCreateRequest(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)


class FlagCreateRequest(BaseModel):
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1, max_length=64)
    reason: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: str = "medium"


class PageResponse(BaseModel, Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    is_last: bool

    @classmethod
    def from_page(cls, page: Page) -> "PageResponse":
        return cls(
            items=page.items,
            page=page.page,
            page_size=page.page_size,
            total_items=page.total_items,
            total_pages=page.total_pages,
            is_last=page.is_last,
        )


class CountResponse(BaseModel):
    count: int
