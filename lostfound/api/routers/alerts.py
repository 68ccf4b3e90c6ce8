from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from lostfound.api.dependencies import ServiceContainer, get_current_user_id, get_services
from lostfound.api.schemas import AlertCreateRequest, AlertUpdateRequest, CountResponse
from lostfound.domain.models import Alert

router = APIRouter()


@router.post("", response_model=Alert, status_code=201)
def create_alert(
    payload: AlertCreateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    criteria = payload.model_dump(exclude={"title"}, exclude_none=True)
    return services.alerts.create_alert(user_id, payload.title, **criteria)


@router.get("", response_model=List[Alert])
def list_alerts(
    active: Optional[bool] = None,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.alerts.list_alerts(user_id, active=active)


@router.get("/active-count", response_model=CountResponse)
def count_active_alerts(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return CountResponse(count=services.alerts.count_active(user_id))


@router.get("/recent", response_model=List[Alert])
def recently_triggered_alerts(
    days: int = Query(7, ge=1, le=90),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.alerts.recently_triggered(user_id, days=days)


@router.get("/{alert_id}", response_model=Alert)
def get_alert(
    alert_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.alerts.get_alert(alert_id, user_id)


@router.put("/{alert_id}", response_model=Alert)
def update_alert(
    alert_id: str,
    payload: AlertUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.alerts.update_alert(alert_id, user_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{alert_id}", status_code=204)
def delete_alert(
    alert_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    services.alerts.delete_alert(alert_id, user_id)
    return Response(status_code=204)


@router.patch("/{alert_id}/toggle", response_model=Alert)
def toggle_alert(
    alert_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return services.alerts.toggle_alert(alert_id, user_id)
