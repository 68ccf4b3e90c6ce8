"""Found-item listings.

Creating a listing hands its alert sweep to the scheduler and returns
without waiting for notifications.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Generic, List, Optional, TypeVar

from lostfound.config.models import ApiConfig
from lostfound.domain.models import Listing, ListingStatus
from lostfound.geocoding import GeocodingClient
from lostfound.logging import get_logger
from lostfound.persistence import ListingRepository, UserRepository, get_session
from lostfound.scheduler import SchedulerService
from lostfound.utils.timestamps import utc_now

from .alerts import AlertService
from .exceptions import AuthorizationError, NotFoundError, ValidationError, build_model
from .users import require_active_user

logger = get_logger(__name__, component="listings")

T = TypeVar("T")

LISTING_EDITABLE_FIELDS = (
    "title",
    "category",
    "location_text",
    "latitude",
    "longitude",
    "found_at",
    "description",
    "image_url",
)


@dataclass
class Page(Generic[T]):
    """One page of results; ``page`` is zero-based."""

    items: List[T] = field(default_factory=list)
    page: int = 0
    page_size: int = 20
    total_items: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.page_size) if self.page_size else 0

    @property
    def is_last(self) -> bool:
        return self.page >= self.total_pages - 1


class ListingService:
    """Listing lifecycle: create, search, read, update and soft delete."""

    def __init__(
        self,
        alert_service: AlertService,
        scheduler: SchedulerService,
        api_config: Optional[ApiConfig] = None,
        geocoder: Optional[GeocodingClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.alert_service = alert_service
        self.scheduler = scheduler
        self.api_config = api_config or ApiConfig()
        self.geocoder = geocoder
        self.clock = clock

    def create_listing(self, finder_user_id: str, **fields) -> Listing:
        """Publish a listing and queue its alert sweep.

        Raises:
            NotFoundError: If the finder does not exist
            ValidationError: If required fields are missing or invalid
        """
        now = self.clock()
        data = {
            "id": str(uuid.uuid4()),
            "finder_user_id": finder_user_id,
            "status": ListingStatus.ACTIVE,
            "created_at": now,
            "updated_at": now,
            **_editable_only(fields),
        }
        listing = self._with_coordinates(build_model(Listing, data))

        with get_session() as session:
            require_active_user(UserRepository(session), finder_user_id)
            listing = ListingRepository(session).create(listing)

        logger.info(
            f"Listing created: {listing.id}",
            extra={"event": "listings.created", "listing_id": listing.id, "user_id": finder_user_id},
        )

        # Queued after commit so the sweep sees the row
        self.scheduler.submit(self.alert_service.process_new_listing, listing.id, name="alert-sweep")
        return listing

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> Page[Listing]:
        """Search active listings, newest first."""
        if page < 0:
            raise ValidationError("page must not be negative")
        size = self._page_size(page_size)

        with get_session() as session:
            items, total = ListingRepository(session).search(
                query=query,
                category=category,
                location=location,
                date_from=date_from,
                date_to=date_to,
                offset=page * size,
                limit=size,
            )
        return Page(items=items, page=page, page_size=size, total_items=total)

    def get_listing(self, listing_id: str, count_view: bool = True) -> Listing:
        """Return a listing, counting the view.

        Raises:
            NotFoundError: If the listing does not exist or was deleted
        """
        with get_session() as session:
            repo = ListingRepository(session)
            listing = repo.get_by_id(listing_id)
            if listing is None or listing.status == ListingStatus.DELETED:
                raise NotFoundError("Listing", listing_id)
            if count_view:
                repo.increment_views(listing_id)
                listing = listing.model_copy(update={"views_count": listing.views_count + 1})
        return listing

    def update_listing(self, listing_id: str, user_id: str, **changes) -> Listing:
        """Edit a listing. Only its finder may, and never once deleted.

        Raises:
            NotFoundError: If the listing does not exist
            AuthorizationError: If ``user_id`` is not the finder
            ValidationError: If the listing was deleted or a field is invalid
        """
        with get_session() as session:
            repo = ListingRepository(session)
            listing = self._load_owned(repo, listing_id, user_id)
            if listing.status == ListingStatus.DELETED:
                raise ValidationError("A deleted listing cannot be modified")

            data = {**listing.model_dump(), **_editable_only(changes), "updated_at": self.clock()}
            updated = build_model(Listing, data)
            if "location_text" in changes and not ({"latitude", "longitude"} & set(changes)):
                updated = self._with_coordinates(
                    updated.model_copy(update={"latitude": None, "longitude": None})
                )
            return repo.update(updated)

    def delete_listing(self, listing_id: str, user_id: str) -> None:
        """Soft delete: the row stays with status ``deleted``."""
        with get_session() as session:
            repo = ListingRepository(session)
            listing = self._load_owned(repo, listing_id, user_id)
            if listing.status == ListingStatus.DELETED:
                raise NotFoundError("Listing", listing_id)
            repo.set_status(listing_id, ListingStatus.DELETED, self.clock())

        logger.info(
            f"Listing deleted: {listing_id}",
            extra={"event": "listings.deleted", "listing_id": listing_id, "user_id": user_id},
        )

    def get_user_listings(self, user_id: str) -> List[Listing]:
        with get_session() as session:
            return ListingRepository(session).get_by_finder(user_id)

    def _page_size(self, requested: Optional[int]) -> int:
        if requested is None:
            return self.api_config.default_page_size
        if requested < 1:
            raise ValidationError("page_size must be at least 1")
        return min(requested, self.api_config.max_page_size)

    def _with_coordinates(self, listing: Listing) -> Listing:
        if (listing.latitude is None) != (listing.longitude is None):
            raise ValidationError("latitude and longitude must be given together")
        if listing.has_coordinates or self.geocoder is None:
            return listing
        found = self.geocoder.geocode(listing.location_text)
        if found is None:
            return listing
        return listing.model_copy(update={"latitude": found.latitude, "longitude": found.longitude})

    @staticmethod
    def _load_owned(repo: ListingRepository, listing_id: str, user_id: str) -> Listing:
        listing = repo.get_by_id(listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        if listing.finder_user_id != user_id:
            raise AuthorizationError("Only the finder can modify this listing")
        return listing


def _editable_only(values: dict) -> dict:
    unknown = set(values) - set(LISTING_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown listing fields: {', '.join(sorted(unknown))}")
    return dict(values)
