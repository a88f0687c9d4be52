# app/routers/dosages.py
#
# This router handles the dosage ledger: recording inhaler use, reading a
# patient's recent history and the adherence figures derived from it.

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from ..models import AdherenceReport, DosageCreate, DosageRecord, PatientStats, Profile
from ..crud import (
    ADHERENCE_WINDOW_DAYS,
    compute_adherence,
    db_get_patient_stats,
    db_get_profile_by_id,
    db_list_recent_doses,
    db_record_dose,
)
from ..access import get_patient_scope, require_patient_access, require_patient_owner
from ..security import get_current_profile

router = APIRouter(tags=["Dosages"])


@router.post("/dosages", response_model=DosageRecord, status_code=status.HTTP_201_CREATED)
def record_dose(dose_data: DosageCreate, viewer: Profile = Depends(get_current_profile)):
    """Appends a dose to the caller's own ledger. Nobody else may write to it."""
    patient_id = dose_data.patient_id or viewer.id
    require_patient_owner(viewer, patient_id)
    return db_record_dose(patient_id, dose_data)


@router.get("/patients/stats", response_model=List[PatientStats])
def list_patient_stats(viewer: Profile = Depends(get_current_profile)):
    """Per-patient weekly summary for every patient the caller can see."""
    stats = []
    for patient_id in sorted(get_patient_scope(viewer)):
        patient = db_get_profile_by_id(patient_id)
        stats.append(db_get_patient_stats(patient_id, patient.full_name if patient else None))
    return stats


@router.get("/patients/{patient_id}/dosages", response_model=List[DosageRecord])
def list_recent_doses(
    patient_id: str,
    limit: int = Query(5, ge=1, le=100),
    since: Optional[datetime] = None,
    viewer: Profile = Depends(get_current_profile)
):
    require_patient_access(viewer, patient_id)
    return db_list_recent_doses(patient_id, limit=limit, since=since)


@router.get("/patients/{patient_id}/adherence", response_model=AdherenceReport)
def get_adherence(
    patient_id: str,
    window_days: int = Query(ADHERENCE_WINDOW_DAYS, ge=1, le=90),
    viewer: Profile = Depends(get_current_profile)
):
    """
    Heuristic adherence estimate. The expected dose count is a configured
    policy, not the patient's actual prescription.
    """
    require_patient_access(viewer, patient_id)
    return compute_adherence(patient_id, window_days=window_days)
