# app/crud.py
#
# This module contains all the functions for Create, Read, Update, and Delete
# (CRUD) operations, interacting directly with the database.
#
# Functions here do not know who is calling. Visibility and ownership rules
# live in access.py and are applied by the routers before any of these run.

import math
import os
import re
import time
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import wraps
from typing import Any, Dict, Iterable, List, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .database import (
    profiles_table,
    links_table,
    assignments_table,
    devices_table,
    dosages_table,
    reminders_table,
    alerts_table,
    notes_table,
)
from .errors import Conflict, Forbidden, NotFound, Unavailable, ValidationFailed
from .models import (
    AdherenceReport,
    AlertCreate,
    CaregiverLink,
    CaregiverNote,
    DeviceCreate,
    DosageCreate,
    DosageRecord,
    EmergencyAlert,
    InhalerDevice,
    MedicalAssignment,
    PatientStats,
    Profile,
    ProfileCreate,
    ProfileUpdate,
    ReminderCreate,
    ReminderSchedule,
    ReminderUpdate,
)

# --- Configuration ---
READ_RETRY_ATTEMPTS = int(os.getenv("READ_RETRY_ATTEMPTS", "3"))
READ_RETRY_DELAY_SECONDS = float(os.getenv("READ_RETRY_DELAY_SECONDS", "0.2"))
# Placeholder policy: the dashboards assume two puffs a day.
EXPECTED_DOSES_PER_DAY = float(os.getenv("EXPECTED_DOSES_PER_DAY", "2"))
ADHERENCE_WINDOW_DAYS = int(os.getenv("ADHERENCE_WINDOW_DAYS", "7"))
LOW_LEVEL_THRESHOLD = int(os.getenv("LOW_LEVEL_THRESHOLD", "20"))
# Backdating is allowed; future times only up to this much device clock drift.
DOSE_CLOCK_SKEW_SECONDS = int(os.getenv("DOSE_CLOCK_SKEW_SECONDS", "300"))

DEFAULT_ALERT_TYPE = "sos"
DEFAULT_ALERT_MESSAGE = "Emergency SOS activated by patient"

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


# --- Store access wrappers ---

def _store_read(func):
    """Retries a read a bounded number of times, then reports Unavailable."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        for attempt in range(1, READ_RETRY_ATTEMPTS + 1):
            try:
                return func(*args, **kwargs)
            except (BotoCoreError, ClientError) as e:
                print(f"DB Read Error ({func.__name__}) attempt {attempt}/{READ_RETRY_ATTEMPTS}: {e}")
                if attempt >= READ_RETRY_ATTEMPTS:
                    raise Unavailable("The data store is currently unavailable.") from e
                time.sleep(READ_RETRY_DELAY_SECONDS * attempt)
    return wrapper

def _store_write(func):
    """Writes are never retried here; a retry could duplicate a ledger entry."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (BotoCoreError, ClientError) as e:
            print(f"DB Write Error ({func.__name__}): {e}")
            raise Unavailable("The data store is currently unavailable.") from e
    return wrapper


# --- Item conversion helpers ---

def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")

def _iso(value: Optional[datetime]) -> Optional[str]:
    """Normalizes a datetime to a UTC ISO string; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(word.title() for word in rest)

def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()

def _to_dynamo(value: Any) -> Any:
    # DynamoDB rejects Python floats
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value

def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value

def _to_item(data: Dict[str, Any], id_attr: str) -> Dict[str, Any]:
    """Builds a DynamoDB item from a model dump. The model's `id` becomes `id_attr`."""
    item = {}
    for field, value in data.items():
        if value is None:
            continue
        name = id_attr if field == "id" else _camel(field)
        item[name] = _to_dynamo(value)
    return item

def _from_item(item: Dict[str, Any], id_attr: str, skip: Iterable[str] = ()) -> Dict[str, Any]:
    data = {}
    for name, value in item.items():
        if name in skip:
            continue
        field = "id" if name == id_attr else _snake(name)
        data[field] = _from_dynamo(value)
    return data

def _query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Runs a query and follows LastEvaluatedKey until every page is read."""
    items = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key

def _update(table, key: Dict[str, Any], changes: Dict[str, Any],
            expected: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """
    SETs every field in `changes` (snake_case) and returns the new item.

    The update only applies to an existing item whose `expected` fields hold
    the given values. Returns None when that condition fails.
    """
    key_name = next(iter(key))
    names = {"#key": key_name}
    values = {}
    clauses = []
    for i, (field, value) in enumerate(changes.items()):
        names[f"#f{i}"] = _camel(field)
        values[f":v{i}"] = _to_dynamo(value)
        clauses.append(f"#f{i} = :v{i}")

    conditions = ["attribute_exists(#key)"]
    for i, (field, value) in enumerate((expected or {}).items()):
        names[f"#c{i}"] = _camel(field)
        values[f":c{i}"] = _to_dynamo(value)
        conditions.append(f"#c{i} = :c{i}")

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(clauses),
            ConditionExpression=" AND ".join(conditions),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if _error_code(e) == "ConditionalCheckFailedException":
            return None
        raise
    return response.get("Attributes", {})

def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")

def _newest_first(rows, attr: str):
    return sorted(rows, key=lambda row: getattr(row, attr) or "", reverse=True)


# --- Profiles ---

def _profile(item: Dict[str, Any]) -> Profile:
    return Profile(**_from_item(item, "profileId"))

@_store_write
def db_create_profile(account_id: str, data: ProfileCreate) -> Profile:
    """
    Creates the single profile for an account during onboarding.
    Raises Conflict if the account already has one.
    """
    if not account_id:
        raise ValidationFailed("An authenticated account is required.")
    full_name = (data.full_name or "").strip()
    if not full_name:
        raise ValidationFailed("full_name is required.")

    timestamp = _now()
    profile = Profile(
        id=str(uuid.uuid4()),
        account_id=account_id,
        role=data.role,
        full_name=full_name,
        mobile_number=data.mobile_number,
        id_proof_number=data.id_proof_number,
        id_proof_url=data.id_proof_url,
        mobile_verified=False,
        created_at=timestamp,
        updated_at=timestamp,
    )
    try:
        # Keyed by accountId, so the condition makes creation one-per-account atomically
        profiles_table.put_item(
            Item=_to_item(profile.model_dump(), "profileId"),
            ConditionExpression="attribute_not_exists(accountId)",
        )
    except ClientError as e:
        if _error_code(e) == "ConditionalCheckFailedException":
            print(f"DB Write: Profile already exists for account {account_id}")
            raise Conflict("A profile already exists for this account.") from e
        raise
    print(f"DB Write: Created {profile.role} profile {profile.id} for account {account_id}")
    return profile

@_store_read
def db_get_profile_for_account(account_id: str) -> Optional[Profile]:
    """Finds the profile belonging to an account (Primary Key)."""
    print(f"DB Read: Searching for profile of account: {account_id}")
    response = profiles_table.get_item(Key={"accountId": account_id}, ConsistentRead=True)
    item = response.get("Item")
    if item:
        return _profile(item)
    print(f"DB Read: No profile for account: {account_id}")
    return None

@_store_read
def db_get_profile_by_id(profile_id: str) -> Optional[Profile]:
    """Finds a profile by its id using the GSI."""
    response = profiles_table.query(
        IndexName="profileId-index",
        KeyConditionExpression=Key("profileId").eq(profile_id),
    )
    items = response.get("Items", [])
    if items:
        return _profile(items[0])
    print(f"DB Read: Profile not found for ID: {profile_id}")
    return None

def _require_profile(profile_id: str, role: Optional[str] = None, label: str = "Profile") -> Profile:
    profile = db_get_profile_by_id(profile_id)
    if not profile:
        raise NotFound(f"{label} not found.")
    if role and profile.role != role:
        raise ValidationFailed(f"{label} {profile_id} does not have the {role} role.")
    return profile

@_store_write
def db_update_profile(profile_id: str, account_id: str, updates: ProfileUpdate) -> Profile:
    """
    Updates the given fields of a profile. Only the owning account may do this;
    the role never changes.
    """
    profile = _require_profile(profile_id)
    if profile.account_id != account_id:
        raise Forbidden("Profiles can only be updated by their owner.")

    changes = updates.model_dump(exclude_unset=True)
    if "full_name" in changes:
        changes["full_name"] = (changes["full_name"] or "").strip()
        if not changes["full_name"]:
            raise ValidationFailed("full_name cannot be empty.")
    if not changes:
        return profile

    changes["updated_at"] = _now()
    attributes = _update(profiles_table, {"accountId": profile.account_id}, changes)
    if attributes is None:
        raise NotFound("Profile not found.")
    print(f"DB Write: Updated profile {profile_id} fields {sorted(changes)}")
    return _profile(attributes)

def _profile_names(profile_ids: Iterable[str]) -> Dict[str, Optional[str]]:
    names = {}
    for profile_id in set(profile_ids):
        profile = db_get_profile_by_id(profile_id)
        names[profile_id] = profile.full_name if profile else None
    return names


# --- Relationship registry ---

def _link(item: Dict[str, Any]) -> CaregiverLink:
    return CaregiverLink(**_from_item(item, "linkId"))

@_store_write
def db_create_link(patient_id: str, caregiver_id: str) -> CaregiverLink:
    """Creates an unapproved patient-caregiver link. Duplicate pairs are allowed."""
    _require_profile(patient_id, "patient", "Patient")
    _require_profile(caregiver_id, "caregiver", "Caregiver")

    link = CaregiverLink(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        caregiver_id=caregiver_id,
        is_approved=False,
        created_at=_now(),
    )
    links_table.put_item(Item=_to_item(link.model_dump(exclude={"patient_name", "caregiver_name"}), "linkId"))
    print(f"DB Write: Created link {link.id} patient={patient_id} caregiver={caregiver_id}")
    return link

@_store_read
def db_get_link(link_id: str) -> Optional[CaregiverLink]:
    response = links_table.get_item(Key={"linkId": link_id})
    item = response.get("Item")
    return _link(item) if item else None

@_store_write
def db_set_link_approval(link_id: str, approved: bool) -> CaregiverLink:
    link = db_get_link(link_id)
    if not link:
        raise NotFound("Link not found.")
    attributes = _update(links_table, {"linkId": link_id}, {"is_approved": approved})
    if attributes is None:
        raise NotFound("Link not found.")
    print(f"DB Write: Link {link_id} is_approved={approved}")
    return _link(attributes)

def _list_links(index_name: str, key_name: str, profile_id: str) -> List[CaregiverLink]:
    items = _query_all(links_table, IndexName=index_name, KeyConditionExpression=Key(key_name).eq(profile_id))
    # Duplicate pairs are legal; de-duplicate by link id only
    unique_items = {item["linkId"]: item for item in items}.values()
    return _newest_first([_link(item) for item in unique_items], "created_at")

@_store_read
def db_list_links_for_patient(patient_id: str, with_names: bool = True) -> List[CaregiverLink]:
    """All links of a patient, approved or not, newest first."""
    links = _list_links("patientId-createdAt-index", "patientId", patient_id)
    if with_names:
        names = _profile_names(link.caregiver_id for link in links)
        for link in links:
            link.caregiver_name = names.get(link.caregiver_id)
    return links

@_store_read
def db_list_links_for_caregiver(caregiver_id: str, with_names: bool = True) -> List[CaregiverLink]:
    """All links of a caregiver, approved or not, newest first."""
    links = _list_links("caregiverId-createdAt-index", "caregiverId", caregiver_id)
    if with_names:
        names = _profile_names(link.patient_id for link in links)
        for link in links:
            link.patient_name = names.get(link.patient_id)
    return links

@_store_write
def db_create_assignment(patient_id: str, medical_team_id: str) -> MedicalAssignment:
    """Operator-only: clients never create assignments."""
    _require_profile(patient_id, "patient", "Patient")
    _require_profile(medical_team_id, "medical_team", "Medical team member")

    assignment = MedicalAssignment(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        medical_team_id=medical_team_id,
        assigned_at=_now(),
    )
    assignments_table.put_item(Item=_to_item(assignment.model_dump(exclude={"patient_name"}), "assignmentId"))
    print(f"DB Write: Assigned patient {patient_id} to medical team member {medical_team_id}")
    return assignment

@_store_read
def db_list_assignments_for_medical_team(medical_team_id: str, with_names: bool = True) -> List[MedicalAssignment]:
    items = _query_all(
        assignments_table,
        IndexName="medicalTeamId-index",
        KeyConditionExpression=Key("medicalTeamId").eq(medical_team_id),
    )
    unique_items = {item["assignmentId"]: item for item in items}.values()
    assignments = [MedicalAssignment(**_from_item(item, "assignmentId")) for item in unique_items]
    if with_names:
        names = _profile_names(a.patient_id for a in assignments)
        for assignment in assignments:
            assignment.patient_name = names.get(assignment.patient_id)
    return _newest_first(assignments, "assigned_at")


# --- Device registry ---

def _device(item: Dict[str, Any]) -> InhalerDevice:
    return InhalerDevice(**_from_item(item, "deviceId"))

def _validate_levels(battery_level: int, remaining_doses: int, total_doses: int):
    if not 0 <= battery_level <= 100:
        raise ValidationFailed("battery_level must be between 0 and 100.")
    if not 0 <= remaining_doses <= total_doses:
        raise ValidationFailed("remaining_doses must be between 0 and total_doses.")

@_store_write
def db_create_device(patient_id: str, data: DeviceCreate) -> InhalerDevice:
    _require_profile(patient_id, "patient", "Patient")
    device_name = (data.device_name or "").strip()
    if not device_name:
        raise ValidationFailed("device_name is required.")
    if data.total_doses < 1:
        raise ValidationFailed("total_doses must be at least 1.")
    remaining = data.total_doses if data.remaining_doses is None else data.remaining_doses
    _validate_levels(data.battery_level, remaining, data.total_doses)

    device = InhalerDevice(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        device_name=device_name,
        external_device_id=data.external_device_id,
        total_doses=data.total_doses,
        remaining_doses=remaining,
        battery_level=data.battery_level,
        created_at=_now(),
    )
    devices_table.put_item(Item=_to_item(device.model_dump(), "deviceId"))
    print(f"DB Write: Registered device {device.id} for patient {patient_id}")
    return device

@_store_read
def db_get_device(device_id: str) -> Optional[InhalerDevice]:
    response = devices_table.get_item(Key={"deviceId": device_id})
    item = response.get("Item")
    return _device(item) if item else None

@_store_read
def db_list_devices_for_patient(patient_id: str) -> List[InhalerDevice]:
    items = _query_all(devices_table, IndexName="patientId-index", KeyConditionExpression=Key("patientId").eq(patient_id))
    return sorted((_device(item) for item in items), key=lambda d: d.created_at)

@_store_write
def db_record_sync(device_id: str, battery_level: int, remaining_doses: int,
                   synced_at: Optional[datetime] = None) -> InhalerDevice:
    """Overwrites the levels reported by the device and stamps last_sync."""
    device = db_get_device(device_id)
    if not device:
        raise NotFound("Device not found.")
    _validate_levels(battery_level, remaining_doses, device.total_doses)

    attributes = _update(devices_table, {"deviceId": device_id}, {
        "battery_level": battery_level,
        "remaining_doses": remaining_doses,
        "last_sync": _iso(synced_at) or _now(),
    })
    if attributes is None:
        raise NotFound("Device not found.")
    print(f"DB Write: Synced device {device_id} battery={battery_level} remaining={remaining_doses}")
    return _device(attributes)

def is_low_battery(device: InhalerDevice, threshold: int = LOW_LEVEL_THRESHOLD) -> bool:
    return device.battery_level < threshold

def is_low_doses(device: InhalerDevice, threshold: int = LOW_LEVEL_THRESHOLD) -> bool:
    """Compares the percentage of doses left, not the raw count, to the threshold."""
    if device.total_doses <= 0:
        return True
    return device.remaining_doses / device.total_doses * 100 < threshold


# --- Dosage ledger ---

def _decrement_remaining_doses(device_id: str) -> None:
    """
    Atomically takes one dose off a device, stopping at zero. The dose is
    already in the ledger when this runs, so a store failure here is logged
    and does not fail the recorded dose.
    """
    try:
        devices_table.update_item(
            Key={"deviceId": device_id},
            UpdateExpression="ADD #remaining :minusOne",
            ConditionExpression="attribute_exists(#key) AND #remaining > :zero",
            ExpressionAttributeNames={"#key": "deviceId", "#remaining": "remainingDoses"},
            ExpressionAttributeValues={":minusOne": -1, ":zero": 0},
        )
    except ClientError as e:
        if _error_code(e) == "ConditionalCheckFailedException":
            print(f"DB Write: Device {device_id} already at zero doses, not decremented")
            return
        print(f"DB Write Error (_decrement_remaining_doses): device {device_id} not decremented: {e}")
    except BotoCoreError as e:
        print(f"DB Write Error (_decrement_remaining_doses): device {device_id} not decremented: {e}")

@_store_write
def db_record_dose(patient_id: str, data: DosageCreate) -> DosageRecord:
    """
    Appends an inhaler-use event to the patient's ledger.

    An empty canister never blocks the record: the event happened regardless.
    When a device is given it must belong to the patient, and its remaining
    dose count drops by one, floored at zero.
    """
    _require_profile(patient_id, "patient", "Patient")

    device = None
    if data.device_id:
        device = db_get_device(data.device_id)
        if not device:
            raise NotFound("Device not found.")
        if device.patient_id != patient_id:
            raise Forbidden("The device does not belong to this patient.")

    now = datetime.now(timezone.utc)
    if data.taken_at is not None and _iso(data.taken_at) > _iso(now + timedelta(seconds=DOSE_CLOCK_SKEW_SECONDS)):
        raise ValidationFailed("taken_at cannot be in the future.")

    created_at = _iso(now)
    record = DosageRecord(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        device_id=data.device_id,
        taken_at=_iso(data.taken_at) or created_at,
        is_scheduled=data.is_scheduled,
        is_emergency=data.is_emergency,
        environmental_trigger=data.environmental_trigger or None,
        notes=data.notes or None,
        scheduled_at=_iso(data.scheduled_at),
        created_at=created_at,
    )
    item = _to_item(record.model_dump(), "recordId")
    item["recordKey"] = f"{record.taken_at}#{record.id}"
    dosages_table.put_item(Item=item)
    print(f"DB Write: Recorded dose {record.id} for patient {patient_id} emergency={record.is_emergency}")

    if device:
        _decrement_remaining_doses(device.id)
    return record

@_store_read
def db_list_recent_doses(patient_id: str, limit: Optional[int] = 5,
                         since: Optional[datetime] = None) -> List[DosageRecord]:
    """
    Reads a patient's ledger newest first. Reads are strongly consistent so a
    dose recorded by the same patient is always visible on the next read.
    """
    if limit is not None and limit < 1:
        raise ValidationFailed("limit must be at least 1.")

    condition = Key("patientId").eq(patient_id)
    if since is not None:
        condition = condition & Key("recordKey").gte(_iso(since))
    query_args = {
        "KeyConditionExpression": condition,
        "ScanIndexForward": False,
        "ConsistentRead": True,
    }
    if limit is not None:
        query_args["Limit"] = limit
        items = dosages_table.query(**query_args).get("Items", [])
    else:
        items = _query_all(dosages_table, **query_args)

    records = [DosageRecord(**_from_item(item, "recordId", skip=("recordKey",))) for item in items]
    records.sort(key=lambda r: (r.taken_at, r.created_at), reverse=True)
    return records[:limit] if limit is not None else records

def adherence_rate(doses_in_window: int, expected_doses: float) -> float:
    """Observed over expected doses as a percentage, clamped to 100."""
    if expected_doses <= 0:
        return 0.0
    return min(100.0, doses_in_window / expected_doses * 100.0)

def compute_adherence(patient_id: str, window_days: int = ADHERENCE_WINDOW_DAYS,
                      now: Optional[datetime] = None,
                      expected_per_day: float = EXPECTED_DOSES_PER_DAY) -> AdherenceReport:
    """
    Estimates adherence over the last `window_days`. The expected count is a
    configured policy, so the result is a heuristic for dashboards only.
    """
    if window_days < 1:
        raise ValidationFailed("window_days must be at least 1.")
    now = now or datetime.now(timezone.utc)
    doses = db_list_recent_doses(patient_id, limit=None, since=now - timedelta(days=window_days))
    expected = expected_per_day * window_days

    return AdherenceReport(
        patient_id=patient_id,
        window_days=window_days,
        doses_in_window=len(doses),
        expected_doses=expected,
        missed_doses=max(0, math.ceil(expected - len(doses))),
        adherence_rate=round(adherence_rate(len(doses), expected), 1),
    )

def db_get_patient_stats(patient_id: str, patient_name: Optional[str] = None,
                         now: Optional[datetime] = None) -> PatientStats:
    """Weekly summary of one patient's ledger, as shown on the care-team dashboards."""
    now = now or datetime.now(timezone.utc)
    doses = db_list_recent_doses(patient_id, limit=None)
    week_ago = _iso(now - timedelta(days=7))
    doses_this_week = sum(1 for d in doses if d.taken_at >= week_ago)
    expected = EXPECTED_DOSES_PER_DAY * 7

    return PatientStats(
        patient_id=patient_id,
        patient_name=patient_name,
        total_doses=len(doses),
        doses_this_week=doses_this_week,
        missed_doses=max(0, math.ceil(expected - doses_this_week)),
        last_dose=doses[0].taken_at if doses else None,
        adherence_rate=round(adherence_rate(doses_this_week, expected)),
    )


# --- Reminder schedules ---

def _reminder(item: Dict[str, Any]) -> ReminderSchedule:
    return ReminderSchedule(**_from_item(item, "reminderId"))

def _validate_time_of_day(value: str) -> str:
    value = (value or "").strip()
    if not TIME_OF_DAY_PATTERN.match(value):
        raise ValidationFailed("time_of_day must be formatted as HH:MM or HH:MM:SS.")
    return value

def _validate_days(days: List[int]) -> List[int]:
    if not days:
        raise ValidationFailed("days_of_week cannot be empty.")
    if any(day < 0 or day > 6 for day in days):
        raise ValidationFailed("days_of_week values must be between 0 and 6.")
    return sorted(set(days))

@_store_write
def db_create_reminder(patient_id: str, data: ReminderCreate) -> ReminderSchedule:
    _require_profile(patient_id, "patient", "Patient")
    reminder = ReminderSchedule(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        time_of_day=_validate_time_of_day(data.time_of_day),
        days_of_week=_validate_days(data.days_of_week),
        is_active=data.is_active,
        created_at=_now(),
    )
    reminders_table.put_item(Item=_to_item(reminder.model_dump(), "reminderId"))
    print(f"DB Write: Created reminder {reminder.id} for patient {patient_id}")
    return reminder

@_store_read
def db_get_reminder(reminder_id: str) -> Optional[ReminderSchedule]:
    response = reminders_table.get_item(Key={"reminderId": reminder_id})
    item = response.get("Item")
    return _reminder(item) if item else None

@_store_read
def db_list_reminders(patient_id: str, active_only: bool = False) -> List[ReminderSchedule]:
    items = _query_all(reminders_table, IndexName="patientId-index", KeyConditionExpression=Key("patientId").eq(patient_id))
    reminders = sorted((_reminder(item) for item in items), key=lambda r: (r.time_of_day, r.created_at))
    if active_only:
        reminders = [r for r in reminders if r.is_active]
    return reminders

@_store_write
def db_update_reminder(reminder_id: str, updates: ReminderUpdate) -> ReminderSchedule:
    reminder = db_get_reminder(reminder_id)
    if not reminder:
        raise NotFound("Reminder not found.")

    changes = updates.model_dump(exclude_unset=True)
    if "time_of_day" in changes:
        changes["time_of_day"] = _validate_time_of_day(changes["time_of_day"])
    if "days_of_week" in changes:
        changes["days_of_week"] = _validate_days(changes["days_of_week"] or [])
    if changes.get("is_active", True) is None:
        raise ValidationFailed("is_active cannot be null.")
    if not changes:
        return reminder

    attributes = _update(reminders_table, {"reminderId": reminder_id}, changes)
    if attributes is None:
        raise NotFound("Reminder not found.")
    print(f"DB Write: Updated reminder {reminder_id} fields {sorted(changes)}")
    return _reminder(attributes)

@_store_write
def db_delete_reminder(reminder_id: str) -> None:
    reminders_table.delete_item(Key={"reminderId": reminder_id})
    print(f"DB Write: Deleted reminder {reminder_id}")


# --- Emergency alerts ---

def _alert(item: Dict[str, Any]) -> EmergencyAlert:
    return EmergencyAlert(**_from_item(item, "alertId"))

@_store_write
def db_raise_alert(patient_id: str, data: AlertCreate) -> EmergencyAlert:
    """Creates an unresolved alert. Missing coordinates are stored as absent."""
    _require_profile(patient_id, "patient", "Patient")
    if data.location_lat is not None and not -90 <= data.location_lat <= 90:
        raise ValidationFailed("location_lat must be between -90 and 90.")
    if data.location_lng is not None and not -180 <= data.location_lng <= 180:
        raise ValidationFailed("location_lng must be between -180 and 180.")

    alert = EmergencyAlert(
        id=str(uuid.uuid4()),
        patient_id=patient_id,
        alert_type=(data.alert_type or "").strip() or DEFAULT_ALERT_TYPE,
        message=data.message or DEFAULT_ALERT_MESSAGE,
        location_lat=data.location_lat,
        location_lng=data.location_lng,
        is_resolved=False,
        created_at=_now(),
    )
    alerts_table.put_item(Item=_to_item(alert.model_dump(exclude={"patient_name"}), "alertId"))
    print(f"DB Write: Raised {alert.alert_type} alert {alert.id} for patient {patient_id}")
    return alert

@_store_read
def db_get_alert(alert_id: str) -> Optional[EmergencyAlert]:
    response = alerts_table.get_item(Key={"alertId": alert_id})
    item = response.get("Item")
    return _alert(item) if item else None

@_store_write
def db_resolve_alert(alert_id: str, actor_profile_id: str) -> EmergencyAlert:
    """
    Marks an alert resolved. Resolving an already resolved alert changes
    nothing and is not an error, so callers may safely retry.
    """
    alert = db_get_alert(alert_id)
    if not alert:
        raise NotFound("Alert not found.")
    if alert.is_resolved:
        print(f"DB Write: Alert {alert_id} already resolved, nothing to do")
        return alert

    attributes = _update(alerts_table, {"alertId": alert_id}, {
        "is_resolved": True,
        "resolved_at": _now(),
        "resolved_by": actor_profile_id,
    }, expected={"is_resolved": False})
    if attributes is None:
        # Another resolver got there first, or the alert is gone
        current = db_get_alert(alert_id)
        if not current:
            raise NotFound("Alert not found.")
        print(f"DB Write: Alert {alert_id} was already resolved by {current.resolved_by}")
        return current
    print(f"DB Write: Alert {alert_id} resolved by {actor_profile_id}")
    return _alert(attributes)

@_store_read
def db_list_alerts_for_patients(patient_ids: Iterable[str], include_resolved: bool = False,
                                limit: Optional[int] = None) -> List[EmergencyAlert]:
    """Alerts across the given patients, newest first, with patient names."""
    patient_ids = set(patient_ids)
    items = []
    for patient_id in patient_ids:
        items.extend(_query_all(
            alerts_table,
            IndexName="patientId-createdAt-index",
            KeyConditionExpression=Key("patientId").eq(patient_id),
        ))
    unique_items = {item["alertId"]: item for item in items}.values()
    alerts = [_alert(item) for item in unique_items]
    if not include_resolved:
        alerts = [a for a in alerts if not a.is_resolved]
    alerts = _newest_first(alerts, "created_at")
    if limit is not None:
        alerts = alerts[:limit]

    names = _profile_names(a.patient_id for a in alerts)
    for alert in alerts:
        alert.patient_name = names.get(alert.patient_id)
    return alerts


# --- Caregiver notes ---

@_store_write
def db_create_note(caregiver_id: str, patient_id: str, note: str) -> CaregiverNote:
    text = (note or "").strip()
    if not text:
        raise ValidationFailed("note cannot be empty.")

    caregiver_note = CaregiverNote(
        id=str(uuid.uuid4()),
        caregiver_id=caregiver_id,
        patient_id=patient_id,
        note=text,
        created_at=_now(),
    )
    notes_table.put_item(Item=_to_item(caregiver_note.model_dump(exclude={"caregiver_name"}), "noteId"))
    print(f"DB Write: Caregiver {caregiver_id} added note {caregiver_note.id} for patient {patient_id}")
    return caregiver_note

@_store_read
def db_list_notes_for_patients(patient_ids: Iterable[str], limit: Optional[int] = 10) -> List[CaregiverNote]:
    items = []
    for patient_id in set(patient_ids):
        items.extend(_query_all(
            notes_table,
            IndexName="patientId-createdAt-index",
            KeyConditionExpression=Key("patientId").eq(patient_id),
        ))
    notes = _newest_first([CaregiverNote(**_from_item(item, "noteId")) for item in items], "created_at")
    if limit is not None:
        notes = notes[:limit]

    names = _profile_names(n.caregiver_id for n in notes)
    for caregiver_note in notes:
        caregiver_note.caregiver_name = names.get(caregiver_note.caregiver_id)
    return notes
