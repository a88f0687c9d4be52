# app/access.py
#
# Row-level access rules. Every router calls into this module before it
# touches the store, so a client cannot widen its view by crafting requests.
#
#   patient       -> its own id
#   caregiver     -> patients linked to it by an *approved* link
#   medical_team  -> patients assigned to it (no approval step)

from typing import Set

from .crud import db_list_assignments_for_medical_team, db_list_links_for_caregiver
from .errors import Forbidden
from .models import CaregiverLink, EmergencyAlert, Profile


def get_patient_scope(viewer: Profile) -> Set[str]:
    """Returns the ids of the patients whose rows `viewer` may read."""
    if viewer.role == "patient":
        return {viewer.id}
    if viewer.role == "caregiver":
        links = db_list_links_for_caregiver(viewer.id, with_names=False)
        return {link.patient_id for link in links if link.is_approved}
    if viewer.role == "medical_team":
        assignments = db_list_assignments_for_medical_team(viewer.id, with_names=False)
        return {a.patient_id for a in assignments}
    return set()


def require_role(viewer: Profile, *roles: str):
    if viewer.role not in roles:
        raise Forbidden(f"This action requires one of the roles: {', '.join(roles)}.")


def require_patient_access(viewer: Profile, patient_id: str):
    """Read access: the patient must be inside the viewer's scope."""
    if patient_id not in get_patient_scope(viewer):
        print(f"ACCESS: Denied {viewer.role} {viewer.id} read access to patient {patient_id}")
        raise Forbidden("You do not have access to this patient.")


def require_patient_owner(viewer: Profile, patient_id: str):
    """Ledger, reminder, device and alert writes belong to the patient alone."""
    if viewer.role != "patient" or viewer.id != patient_id:
        print(f"ACCESS: Denied {viewer.role} {viewer.id} owner access to patient {patient_id}")
        raise Forbidden("Only the patient can perform this action.")


def require_approved_caregiver(viewer: Profile, patient_id: str):
    require_role(viewer, "caregiver")
    if patient_id not in get_patient_scope(viewer):
        print(f"ACCESS: Caregiver {viewer.id} has no approved link to patient {patient_id}")
        raise Forbidden("An approved caregiver link to this patient is required.")


def require_link_party(viewer: Profile, link: CaregiverLink):
    if viewer.id not in (link.patient_id, link.caregiver_id):
        raise Forbidden("You are not a party to this link.")


def require_link_approval_rights(viewer: Profile, link: CaregiverLink, approved: bool):
    """
    Granting access is the patient's decision. Either side may revoke it, so a
    caregiver can step back without the patient's involvement.
    """
    require_link_party(viewer, link)
    if approved and viewer.id != link.patient_id:
        raise Forbidden("Only the patient can approve a caregiver link.")


def require_alert_resolver(viewer: Profile, alert: EmergencyAlert):
    require_role(viewer, "caregiver", "medical_team")
    require_patient_access(viewer, alert.patient_id)
