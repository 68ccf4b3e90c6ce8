"""Message texts and template contexts for outbound notifications.

Every user-facing string the backend sends lives here so the services only
decide who gets notified and on which channel.
"""

from typing import Dict, Optional

from lostfound.domain.models import Alert, Listing, User

PRODUCT_NAME = "Lost & Found"


def build_listing_url(public_base_url: str, listing_id: str) -> str:
    """Front-end URL of a listing page."""
    return f"{public_base_url.rstrip('/')}/listings/{listing_id}"


def build_thread_path(thread_id: str) -> str:
    """Front-end path of a conversation, relative to the app root."""
    return f"/messages/{thread_id}"


PROFILE_PATH = "/profile"


def build_alert_match_context(
    owner: User,
    alert: Alert,
    listing: Listing,
    listing_url: str,
    distance_km: Optional[float] = None,
) -> Dict:
    """Template context for the alert-match email."""
    category = listing.category.value if hasattr(listing.category, "value") else listing.category
    return {
        "owner_name": owner.name,
        "alert_title": alert.title,
        "listing_title": listing.title,
        "category": category,
        "location": listing.location_text,
        "found_on": listing.found_at.strftime("%Y-%m-%d"),
        "description": listing.description,
        "image_url": listing.image_url,
        "listing_url": listing_url,
        "distance_km": distance_km,
    }


def alert_match_sms(alert: Alert, listing: Listing, listing_url: str) -> str:
    return (
        f"{PRODUCT_NAME}: new found item for your alert '{alert.title}' - "
        f"{listing.title}. See: {listing_url}"
    )


def alert_match_push(alert: Alert, listing: Listing) -> Dict[str, str]:
    return {
        "title": "New item found!",
        "body": f"'{listing.title}' matches your alert '{alert.title}'",
    }


def confirmation_code_sms(listing_title: str, code: str, expiry_hours: int) -> str:
    return (
        f"{PRODUCT_NAME}: handover code for '{listing_title}': {code}. "
        f"Valid for {expiry_hours}h."
    )


def confirmation_code_push(code: str, expiry_hours: int) -> Dict[str, str]:
    return {
        "title": "Handover code generated",
        "body": f"Code: {code} (valid for {expiry_hours}h)",
    }


def handover_owner_push(listing_title: str) -> Dict[str, str]:
    return {"title": "Item recovered!", "body": f"You recovered: {listing_title}"}


def handover_finder_push(listing_title: str) -> Dict[str, str]:
    return {"title": "Handover confirmed!", "body": f"Item handed over: {listing_title}"}


def handover_owner_sms(listing_title: str) -> str:
    return f"{PRODUCT_NAME}: handover confirmed for '{listing_title}'. Thanks for using our service!"


def handover_finder_sms(listing_title: str) -> str:
    return f"{PRODUCT_NAME}: thank you for helping return '{listing_title}'. It makes a difference!"


def flag_reviewed_push(approved: bool) -> Dict[str, str]:
    outcome = "approved" if approved else "rejected"
    return {"title": "Report reviewed", "body": f"Your report was {outcome} by moderation"}
