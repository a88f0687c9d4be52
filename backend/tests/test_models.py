# backend/tests/test_models.py
#
# This file contains the unit tests for the Pydantic models defined in `app/models.py`.
# These check the request shapes the API accepts before any data reaches the
# database layer.

import pytest
from pydantic import ValidationError

from backend.app.models import (
    AlertCreate,
    DeviceResponse,
    DosageCreate,
    Profile,
    ProfileCreate,
    ProfileUpdate,
    ReminderCreate,
)

# A profile as the CRUD layer returns it after reading a DynamoDB item.
VALID_PROFILE_DATA = {
    "id": "profile-123",
    "account_id": "acct-abc",
    "role": "caregiver",
    "full_name": "Test Caregiver",
    "mobile_number": "+15555555555",
    "created_at": "2024-01-01T00:00:00.000000+00:00",
    "updated_at": "2024-01-01T00:00:00.000000+00:00",
}


def test_profile_model_success():
    profile = Profile(**VALID_PROFILE_DATA)

    assert profile.role == "caregiver"
    # Optional fields fall back to their defaults
    assert profile.id_proof_url is None
    assert profile.mobile_verified is False

def test_profile_requires_a_known_role():
    with pytest.raises(ValidationError):
        ProfileCreate(full_name="Someone", role="admin")

def test_profile_update_has_no_role():
    # Role is fixed at onboarding, so the update model refuses it outright
    with pytest.raises(ValidationError):
        ProfileUpdate(role="patient")

def test_profile_update_cannot_verify_mobile():
    with pytest.raises(ValidationError):
        ProfileUpdate(mobile_verified=True)

def test_reminder_defaults_to_every_day():
    reminder = ReminderCreate(time_of_day="08:00")

    assert reminder.days_of_week == [0, 1, 2, 3, 4, 5, 6]
    assert reminder.is_active is True

def test_alert_location_is_optional():
    alert = AlertCreate()

    assert alert.alert_type == "sos"
    assert alert.location_lat is None and alert.location_lng is None

def test_dosage_create_parses_backdated_time():
    dose = DosageCreate(taken_at="2024-03-01T08:30:00Z")

    assert dose.taken_at.year == 2024
    assert dose.patient_id is None

def test_device_response_requires_flags():
    with pytest.raises(ValidationError):
        DeviceResponse(
            id="d1", patient_id="p1", device_name="Blue", total_doses=200,
            remaining_doses=10, battery_level=50, created_at="2024-01-01",
        )
