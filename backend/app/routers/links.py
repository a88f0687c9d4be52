# app/routers/links.py
#
# This router handles the relationship registry: patient-caregiver links
# with their approval state, and the medical-team assignments.

from typing import List
from fastapi import APIRouter, Depends, status

from ..models import CaregiverLink, LinkApproval, LinkCreate, MedicalAssignment, Profile
from ..crud import (
    db_create_link,
    db_get_link,
    db_set_link_approval,
    db_list_links_for_patient,
    db_list_links_for_caregiver,
    db_list_assignments_for_medical_team,
)
from ..access import require_role, require_link_approval_rights
from ..errors import Forbidden, NotFound
from ..security import get_current_profile

router = APIRouter(tags=["Relationships"])


@router.post("/links", response_model=CaregiverLink, status_code=status.HTTP_201_CREATED)
def create_link(link_data: LinkCreate, viewer: Profile = Depends(get_current_profile)):
    """
    Creates an unapproved link. Either the patient or the caregiver may start
    it, but only as one of its two parties.
    """
    if viewer.id not in (link_data.patient_id, link_data.caregiver_id):
        raise Forbidden("You can only create links that include yourself.")
    return db_create_link(link_data.patient_id, link_data.caregiver_id)


@router.put("/links/{link_id}/approval", response_model=CaregiverLink)
def set_link_approval(
    link_id: str,
    approval: LinkApproval,
    viewer: Profile = Depends(get_current_profile)
):
    """Approve (patient only) or revoke (either party) a caregiver link."""
    link = db_get_link(link_id)
    if not link:
        raise NotFound("Link not found.")
    require_link_approval_rights(viewer, link, approval.approved)
    return db_set_link_approval(link_id, approval.approved)


@router.get("/links", response_model=List[CaregiverLink])
def list_links(viewer: Profile = Depends(get_current_profile)):
    """
    Lists the caller's links in every approval state, newest first.
    Patients see their caregivers; caregivers see their patients.
    """
    require_role(viewer, "patient", "caregiver")
    if viewer.role == "patient":
        return db_list_links_for_patient(viewer.id)
    return db_list_links_for_caregiver(viewer.id)


@router.get("/assignments", response_model=List[MedicalAssignment])
def list_assignments(viewer: Profile = Depends(get_current_profile)):
    require_role(viewer, "medical_team")
    return db_list_assignments_for_medical_team(viewer.id)
