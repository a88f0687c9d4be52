from unittest.mock import MagicMock

from backend.app import database


def _resource(existing=()):
    resource = MagicMock()
    tables = []
    for table_name in existing:
        table = MagicMock()
        table.name = table_name
        tables.append(table)
    resource.tables.all.return_value = tables
    return resource


def test_create_tables_builds_every_table():
    resource = _resource()

    created = database.create_tables(resource)

    assert created == [definition[0] for definition in database.TABLE_DEFINITIONS]
    assert resource.create_table.call_count == len(database.TABLE_DEFINITIONS)
    assert resource.create_table.return_value.wait_until_exists.call_count == len(created)

def test_dosage_table_keys_the_ledger_by_patient():
    resource = _resource()

    database.create_tables(resource)

    calls = {c.kwargs['TableName']: c.kwargs for c in resource.create_table.call_args_list}
    dosages = calls[database.DOSAGES_TABLE_NAME]
    assert dosages['KeySchema'] == [
        {'AttributeName': 'patientId', 'KeyType': 'HASH'},
        {'AttributeName': 'recordKey', 'KeyType': 'RANGE'},
    ]
    assert 'GlobalSecondaryIndexes' not in dosages

    # Index key attributes must be declared alongside the table keys
    links = calls[database.LINKS_TABLE_NAME]
    declared = {a['AttributeName'] for a in links['AttributeDefinitions']}
    assert declared == {'linkId', 'patientId', 'caregiverId', 'createdAt'}

def test_existing_tables_are_skipped():
    resource = _resource(existing=[database.PROFILES_TABLE_NAME, database.NOTES_TABLE_NAME])

    created = database.create_tables(resource)

    assert database.PROFILES_TABLE_NAME not in created
    assert database.NOTES_TABLE_NAME not in created
    assert len(created) == len(database.TABLE_DEFINITIONS) - 2
