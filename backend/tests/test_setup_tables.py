from backend import setup_tables


def test_read_assignments_skips_incomplete_rows(tmp_path):
    csv_file = tmp_path / "assignments.csv"
    csv_file.write_text(
        "patient_id,medical_team_id\n"
        "p-1,m-1\n"
        ",m-2\n"
        " p-3 , m-3 \n",
        encoding="utf-8",
    )

    pairs = setup_tables.read_assignments(str(csv_file))

    assert pairs == [("p-1", "m-1"), ("p-3", "m-3")]

def test_import_assignments_counts_skipped_rows(patient, doctor, caregiver):
    imported, skipped = setup_tables.import_assignments([
        (patient.id, doctor.id),
        ("missing-patient", doctor.id),
        # A caregiver is not a medical-team member
        (patient.id, caregiver.id),
    ])

    assert (imported, skipped) == (1, 2)

def test_main_creates_tables_then_imports(mocker, tmp_path):
    csv_file = tmp_path / "assignments.csv"
    csv_file.write_text("patient_id,medical_team_id\np-1,m-1\n", encoding="utf-8")
    create_tables = mocker.patch.object(setup_tables, "create_tables", return_value=["Profiles"])
    import_assignments = mocker.patch.object(setup_tables, "import_assignments", return_value=(1, 0))
    mocker.patch.object(setup_tables, "ASSIGNMENTS_FILE", str(csv_file))
    mocker.patch.object(setup_tables, "SKIP_CREATE", False)

    setup_tables.main()

    create_tables.assert_called_once_with()
    import_assignments.assert_called_once_with([("p-1", "m-1")])
