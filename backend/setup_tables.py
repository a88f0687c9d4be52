import csv
import os
import sys

# --- CONFIGURATION ---
# Environment overrides are supported. Table names, region and endpoint are
# read by app.database from the same environment (see backend/app/database.py).

# Optional CSV of medical-team assignments to import after the tables exist.
# Columns: patient_id,medical_team_id (header row required)
ASSIGNMENTS_FILE = os.getenv("SETUP_ASSIGNMENTS_FILE")

# Skip table creation and only import assignments
SKIP_CREATE = os.getenv("SETUP_SKIP_CREATE", "false").lower() in ("1", "true", "yes")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from backend.app.database import create_tables  # noqa: E402
from backend.app.crud import db_create_assignment  # noqa: E402
from backend.app.errors import NotFound, ValidationFailed  # noqa: E402


def read_assignments(path: str) -> list[tuple[str, str]]:
    """Reads (patient_id, medical_team_id) pairs, skipping blank rows."""
    print(f"Reading assignments from {path}...")
    pairs = []
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            patient_id = (row.get("patient_id") or "").strip()
            medical_team_id = (row.get("medical_team_id") or "").strip()
            if patient_id and medical_team_id:
                pairs.append((patient_id, medical_team_id))
    print(f"Found {len(pairs)} assignments.")
    return pairs


def import_assignments(pairs: list[tuple[str, str]]) -> tuple[int, int]:
    """
    Creates one assignment per pair. Rows referencing unknown profiles or the
    wrong roles are reported and skipped. Returns (imported, skipped).
    """
    imported = skipped = 0
    for patient_id, medical_team_id in pairs:
        try:
            db_create_assignment(patient_id, medical_team_id)
            imported += 1
        except (NotFound, ValidationFailed) as exc:
            print(f"Skipping {patient_id} -> {medical_team_id}: {exc.detail}")
            skipped += 1
    return imported, skipped


def main() -> None:
    if not SKIP_CREATE:
        created = create_tables()
        print(f"Created {len(created)} tables: {', '.join(created) or 'none'}")

    if ASSIGNMENTS_FILE:
        imported, skipped = import_assignments(read_assignments(ASSIGNMENTS_FILE))
        print(f"Imported {imported} assignments, skipped {skipped}.")
    print("Setup complete.")


if __name__ == "__main__":
    main()
