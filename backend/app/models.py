# app/models.py
#
# This module contains all Pydantic models used for data validation,
# serialization, and API request/response schemas.
#
# Stored rows are returned from the CRUD layer as these typed models, never
# as raw DynamoDB items.

from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["patient", "caregiver", "medical_team"]


# --- Profiles ---

class Profile(BaseModel):
    id: str
    account_id: str
    role: Role
    full_name: str
    mobile_number: Optional[str] = None
    id_proof_number: Optional[str] = None
    id_proof_url: Optional[str] = None
    mobile_verified: bool = False
    created_at: str
    updated_at: str

class ProfileCreate(BaseModel):
    full_name: str
    role: Role
    mobile_number: Optional[str] = None
    id_proof_number: Optional[str] = None
    id_proof_url: Optional[str] = None

class ProfileUpdate(BaseModel):
    # Role is deliberately absent: it cannot change after onboarding.
    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = None
    mobile_number: Optional[str] = None
    id_proof_number: Optional[str] = None
    id_proof_url: Optional[str] = None


# --- Relationships ---

class CaregiverLink(BaseModel):
    id: str
    patient_id: str
    caregiver_id: str
    is_approved: bool = False
    created_at: str
    # Counterpart names for display, filled in by the listing functions
    patient_name: Optional[str] = None
    caregiver_name: Optional[str] = None

class LinkCreate(BaseModel):
    patient_id: str
    caregiver_id: str

class LinkApproval(BaseModel):
    approved: bool

class MedicalAssignment(BaseModel):
    id: str
    patient_id: str
    medical_team_id: str
    assigned_at: str
    patient_name: Optional[str] = None


# --- Devices ---

class InhalerDevice(BaseModel):
    id: str
    patient_id: str
    device_name: str
    external_device_id: Optional[str] = None
    total_doses: int
    remaining_doses: int
    battery_level: int
    last_sync: Optional[str] = None
    created_at: str

class DeviceResponse(InhalerDevice):
    low_battery: bool
    low_doses: bool

class DeviceCreate(BaseModel):
    device_name: str
    external_device_id: Optional[str] = None
    total_doses: int
    remaining_doses: Optional[int] = None # Defaults to total_doses for a new canister
    battery_level: int = 100

class DeviceSync(BaseModel):
    battery_level: int
    remaining_doses: int
    synced_at: Optional[datetime] = None


# --- Dosage ledger ---

class DosageRecord(BaseModel):
    id: str
    patient_id: str
    device_id: Optional[str] = None
    taken_at: str
    is_scheduled: bool = False
    is_emergency: bool = False
    environmental_trigger: Optional[str] = None
    notes: Optional[str] = None
    scheduled_at: Optional[str] = None
    created_at: str

class DosageCreate(BaseModel):
    patient_id: Optional[str] = None # Defaults to the caller's own profile
    device_id: Optional[str] = None
    is_scheduled: bool = False
    is_emergency: bool = False
    environmental_trigger: Optional[str] = None
    notes: Optional[str] = None
    taken_at: Optional[datetime] = None # Backdating; defaults to now
    scheduled_at: Optional[datetime] = None

class AdherenceReport(BaseModel):
    """
    Heuristic ratio of observed to expected dose events over a window.
    It is an estimate for dashboards, not an accounting figure.
    """
    patient_id: str
    window_days: int
    doses_in_window: int
    expected_doses: float
    missed_doses: int
    adherence_rate: float
    is_estimate: bool = True

class PatientStats(BaseModel):
    patient_id: str
    patient_name: Optional[str] = None
    total_doses: int
    doses_this_week: int
    missed_doses: int
    last_dose: Optional[str] = None
    adherence_rate: int


# --- Reminders ---

class ReminderSchedule(BaseModel):
    id: str
    patient_id: str
    time_of_day: str # "HH:MM" or "HH:MM:SS"
    days_of_week: List[int] # 0 = Sunday ... 6 = Saturday
    is_active: bool = True
    created_at: str

class ReminderCreate(BaseModel):
    time_of_day: str
    days_of_week: List[int] = Field(default_factory=lambda: list(range(7)))
    is_active: bool = True

class ReminderUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time_of_day: Optional[str] = None
    days_of_week: Optional[List[int]] = None
    is_active: Optional[bool] = None


# --- Emergency alerts ---

class EmergencyAlert(BaseModel):
    id: str
    patient_id: str
    alert_type: str
    message: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    is_resolved: bool = False
    created_at: str
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None
    patient_name: Optional[str] = None

class AlertCreate(BaseModel):
    alert_type: str = "sos"
    message: Optional[str] = None
    # Best-effort geolocation; either may be missing
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None


# --- Caregiver notes ---

class CaregiverNote(BaseModel):
    id: str
    caregiver_id: str
    patient_id: str
    note: str
    created_at: str
    caregiver_name: Optional[str] = None

class NoteCreate(BaseModel):
    patient_id: str
    note: str


# --- Authentication ---

class LoginResponse(BaseModel): # Response model for successful login
    message: str
    api_token: str # The backend's own session token
    profile: Optional[Profile] = None # None until onboarding creates one

class CognitoToken(BaseModel):
    # Clients send the Cognito ID token when no API Gateway authorizer is in front
    idToken: str
