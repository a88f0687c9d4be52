# app/routers/reminders.py
#
# This router handles a patient's own reminder schedules. No other role can
# read or change them.

from typing import List
from fastapi import APIRouter, Depends, Response, status

from ..models import Profile, ReminderCreate, ReminderSchedule, ReminderUpdate
from ..crud import (
    db_create_reminder,
    db_delete_reminder,
    db_get_reminder,
    db_list_reminders,
    db_update_reminder,
)
from ..access import require_patient_owner, require_role
from ..errors import NotFound
from ..security import get_current_profile

router = APIRouter(prefix="/reminders", tags=["Reminders"])


def _owned_reminder(reminder_id: str, viewer: Profile) -> ReminderSchedule:
    reminder = db_get_reminder(reminder_id)
    if not reminder:
        raise NotFound("Reminder not found.")
    require_patient_owner(viewer, reminder.patient_id)
    return reminder


@router.post("", response_model=ReminderSchedule, status_code=status.HTTP_201_CREATED)
def create_reminder(reminder_data: ReminderCreate, viewer: Profile = Depends(get_current_profile)):
    require_role(viewer, "patient")
    return db_create_reminder(viewer.id, reminder_data)


@router.get("", response_model=List[ReminderSchedule])
def list_reminders(active_only: bool = False, viewer: Profile = Depends(get_current_profile)):
    require_role(viewer, "patient")
    return db_list_reminders(viewer.id, active_only=active_only)


@router.patch("/{reminder_id}", response_model=ReminderSchedule)
def update_reminder(
    reminder_id: str,
    updates: ReminderUpdate,
    viewer: Profile = Depends(get_current_profile)
):
    _owned_reminder(reminder_id, viewer)
    return db_update_reminder(reminder_id, updates)


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder(reminder_id: str, viewer: Profile = Depends(get_current_profile)):
    _owned_reminder(reminder_id, viewer)
    db_delete_reminder(reminder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
