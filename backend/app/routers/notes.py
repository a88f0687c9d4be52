# app/routers/notes.py
#
# This router handles caregiver notes: observations a caregiver attaches to
# a patient, read by the patient's care team.

from fastapi import APIRouter, Depends, Query, status
from typing import List

from ..models import CaregiverNote, NoteCreate, Profile
from ..crud import db_create_note, db_list_notes_for_patients
from ..access import require_approved_caregiver, require_patient_access
from ..security import get_current_profile

router = APIRouter(tags=["Caregiver Notes"])


@router.post("/notes", response_model=CaregiverNote, status_code=status.HTTP_201_CREATED)
def add_note(note_data: NoteCreate, viewer: Profile = Depends(get_current_profile)):
    require_approved_caregiver(viewer, note_data.patient_id)
    return db_create_note(viewer.id, note_data.patient_id, note_data.note)


@router.get("/patients/{patient_id}/notes", response_model=List[CaregiverNote])
def list_notes(
    patient_id: str,
    limit: int = Query(10, ge=1, le=100),
    viewer: Profile = Depends(get_current_profile)
):
    """403 when the caller has no access, so it is never mistaken for 'no notes'."""
    require_patient_access(viewer, patient_id)
    return db_list_notes_for_patients([patient_id], limit=limit)
