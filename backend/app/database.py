# app/database.py
#
# This module is responsible for initializing the database connection
# and creating table resources. It centralizes all database setup.

import os
import boto3

# --- DynamoDB Configuration ---
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
DYNAMODB_ENDPOINT_URL = os.getenv("DYNAMODB_ENDPOINT_URL")  # e.g. http://localhost:8000 for DynamoDB Local

PROFILES_TABLE_NAME = os.getenv("PROFILES_TABLE_NAME", "Profiles")
LINKS_TABLE_NAME = os.getenv("LINKS_TABLE_NAME", "PatientCaregiverLinks")
ASSIGNMENTS_TABLE_NAME = os.getenv("ASSIGNMENTS_TABLE_NAME", "PatientMedicalAssignments")
DEVICES_TABLE_NAME = os.getenv("DEVICES_TABLE_NAME", "InhalerDevices")
DOSAGES_TABLE_NAME = os.getenv("DOSAGES_TABLE_NAME", "DosageRecords")
REMINDERS_TABLE_NAME = os.getenv("REMINDERS_TABLE_NAME", "ReminderSchedules")
ALERTS_TABLE_NAME = os.getenv("ALERTS_TABLE_NAME", "EmergencyAlerts")
NOTES_TABLE_NAME = os.getenv("NOTES_TABLE_NAME", "CaregiverNotes")

dynamodb = boto3.resource('dynamodb', region_name=AWS_REGION, endpoint_url=DYNAMODB_ENDPOINT_URL)
profiles_table = dynamodb.Table(PROFILES_TABLE_NAME)
links_table = dynamodb.Table(LINKS_TABLE_NAME)
assignments_table = dynamodb.Table(ASSIGNMENTS_TABLE_NAME)
devices_table = dynamodb.Table(DEVICES_TABLE_NAME)
dosages_table = dynamodb.Table(DOSAGES_TABLE_NAME)
reminders_table = dynamodb.Table(REMINDERS_TABLE_NAME)
alerts_table = dynamodb.Table(ALERTS_TABLE_NAME)
notes_table = dynamodb.Table(NOTES_TABLE_NAME)


def _index(name, hash_key, range_key=None):
    key_schema = [{'AttributeName': hash_key, 'KeyType': 'HASH'}]
    if range_key:
        key_schema.append({'AttributeName': range_key, 'KeyType': 'RANGE'})
    return {'IndexName': name, 'KeySchema': key_schema, 'Projection': {'ProjectionType': 'ALL'}}


# Key layout per table: (table name, hash key, range key, global secondary indexes).
# Every key attribute is a string.
TABLE_DEFINITIONS = [
    (PROFILES_TABLE_NAME, 'accountId', None, [_index('profileId-index', 'profileId')]),
    (LINKS_TABLE_NAME, 'linkId', None, [
        _index('patientId-createdAt-index', 'patientId', 'createdAt'),
        _index('caregiverId-createdAt-index', 'caregiverId', 'createdAt'),
    ]),
    (ASSIGNMENTS_TABLE_NAME, 'assignmentId', None, [
        _index('medicalTeamId-index', 'medicalTeamId'),
        _index('patientId-index', 'patientId'),
    ]),
    (DEVICES_TABLE_NAME, 'deviceId', None, [_index('patientId-index', 'patientId')]),
    (DOSAGES_TABLE_NAME, 'patientId', 'recordKey', []),
    (REMINDERS_TABLE_NAME, 'reminderId', None, [_index('patientId-index', 'patientId')]),
    (ALERTS_TABLE_NAME, 'alertId', None, [_index('patientId-createdAt-index', 'patientId', 'createdAt')]),
    (NOTES_TABLE_NAME, 'noteId', None, [_index('patientId-createdAt-index', 'patientId', 'createdAt')]),
]


def create_tables(resource=None):
    """
    Creates every table and index the service needs. Tables that already
    exist are left untouched, so this is safe to re-run.
    Returns the names of the tables that were created.
    """
    resource = resource or dynamodb
    existing = {table.name for table in resource.tables.all()}
    created = []

    for table_name, hash_key, range_key, indexes in TABLE_DEFINITIONS:
        if table_name in existing:
            print(f"DB Setup: Table {table_name} already exists, skipping.")
            continue

        key_schema = [{'AttributeName': hash_key, 'KeyType': 'HASH'}]
        attribute_names = {hash_key}
        if range_key:
            key_schema.append({'AttributeName': range_key, 'KeyType': 'RANGE'})
            attribute_names.add(range_key)
        for index in indexes:
            attribute_names.update(k['AttributeName'] for k in index['KeySchema'])

        create_args = {
            'TableName': table_name,
            'KeySchema': key_schema,
            'AttributeDefinitions': [
                {'AttributeName': name, 'AttributeType': 'S'} for name in sorted(attribute_names)
            ],
            'BillingMode': 'PAY_PER_REQUEST',
        }
        if indexes:
            create_args['GlobalSecondaryIndexes'] = indexes

        print(f"DB Setup: Creating table {table_name}...")
        table = resource.create_table(**create_args)
        table.wait_until_exists()
        created.append(table_name)

    return created
