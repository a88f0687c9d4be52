# app/routers/devices.py
#
# This router handles the inhaler device registry. Low-battery and low-dose
# flags are computed on every read and never stored.

from typing import List
from fastapi import APIRouter, Depends, Query, status

from ..models import DeviceCreate, DeviceResponse, DeviceSync, InhalerDevice, Profile
from ..crud import (
    LOW_LEVEL_THRESHOLD,
    db_create_device,
    db_get_device,
    db_list_devices_for_patient,
    db_record_sync,
    is_low_battery,
    is_low_doses,
)
from ..access import get_patient_scope, require_patient_access, require_patient_owner, require_role
from ..errors import NotFound
from ..security import get_current_profile

router = APIRouter(tags=["Devices"])


def _with_flags(device: InhalerDevice, threshold: int) -> DeviceResponse:
    return DeviceResponse(
        **device.model_dump(),
        low_battery=is_low_battery(device, threshold),
        low_doses=is_low_doses(device, threshold),
    )


@router.post("/devices", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
def register_device(device_data: DeviceCreate, viewer: Profile = Depends(get_current_profile)):
    require_role(viewer, "patient")
    return _with_flags(db_create_device(viewer.id, device_data), LOW_LEVEL_THRESHOLD)


@router.get("/patients/{patient_id}/devices", response_model=List[DeviceResponse])
def list_patient_devices(
    patient_id: str,
    threshold: int = Query(LOW_LEVEL_THRESHOLD, ge=0, le=100),
    viewer: Profile = Depends(get_current_profile)
):
    require_patient_access(viewer, patient_id)
    return [_with_flags(d, threshold) for d in db_list_devices_for_patient(patient_id)]


@router.get("/devices/attention", response_model=List[DeviceResponse])
def list_devices_needing_attention(
    threshold: int = Query(LOW_LEVEL_THRESHOLD, ge=0, le=100),
    viewer: Profile = Depends(get_current_profile)
):
    """Devices across every visible patient that are low on battery or doses."""
    flagged = []
    for patient_id in sorted(get_patient_scope(viewer)):
        for device in db_list_devices_for_patient(patient_id):
            response = _with_flags(device, threshold)
            if response.low_battery or response.low_doses:
                flagged.append(response)
    return flagged


@router.put("/devices/{device_id}/sync", response_model=DeviceResponse)
def sync_device(
    device_id: str,
    sync_data: DeviceSync,
    viewer: Profile = Depends(get_current_profile)
):
    """Overwrites battery and dose levels as reported by the device, relayed by its owner."""
    device = db_get_device(device_id)
    if not device:
        raise NotFound("Device not found.")
    require_patient_owner(viewer, device.patient_id)
    updated = db_record_sync(device_id, sync_data.battery_level, sync_data.remaining_doses, sync_data.synced_at)
    return _with_flags(updated, LOW_LEVEL_THRESHOLD)
