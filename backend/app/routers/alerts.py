# app/routers/alerts.py
#
# This router handles the emergency alert queue. Alerts move one way, from
# unresolved to resolved, and resolving is idempotent so retries are safe.

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from ..models import AlertCreate, EmergencyAlert, Profile
from ..crud import db_get_alert, db_list_alerts_for_patients, db_raise_alert, db_resolve_alert
from ..access import get_patient_scope, require_alert_resolver, require_role
from ..errors import NotFound
from ..security import get_current_profile

router = APIRouter(prefix="/alerts", tags=["Emergency Alerts"])


@router.post("", response_model=EmergencyAlert, status_code=status.HTTP_201_CREATED)
def raise_alert(alert_data: AlertCreate, viewer: Profile = Depends(get_current_profile)):
    """Raises an SOS for the calling patient. Location is optional."""
    require_role(viewer, "patient")
    return db_raise_alert(viewer.id, alert_data)


@router.put("/{alert_id}/resolve", response_model=EmergencyAlert)
def resolve_alert(alert_id: str, viewer: Profile = Depends(get_current_profile)):
    """
    Resolves an alert on behalf of a caregiver (approved link) or an assigned
    medical-team member. Resolving twice returns the same resolved alert.
    """
    alert = db_get_alert(alert_id)
    if not alert:
        raise NotFound("Alert not found.")
    require_alert_resolver(viewer, alert)
    return db_resolve_alert(alert_id, viewer.id)


@router.get("", response_model=List[EmergencyAlert])
def list_visible_alerts(
    include_resolved: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=100),
    viewer: Profile = Depends(get_current_profile)
):
    """
    Alerts for every patient the caller can see, newest first. Unresolved
    only unless `include_resolved` is set.
    """
    return db_list_alerts_for_patients(get_patient_scope(viewer), include_resolved=include_resolved, limit=limit)
