# backend/tests/conftest.py
#
# Shared fixtures. The DynamoDB tables used by `app/crud.py` are replaced by
# in-memory stand-ins so no test ever talks to AWS.

import copy
import os
import sys
import uuid

# --- Set dummy environment variables for testing ---
# This must be done BEFORE importing the FastAPI app
os.environ.setdefault('AWS_REGION', "us-east-1")
os.environ.setdefault('AWS_DEFAULT_REGION', "us-east-1")
os.environ['COGNITO_REGION'] = "us-east-1"
os.environ['COGNITO_USERPOOL_ID'] = "us-east-1_dummy"
os.environ['COGNITO_APP_CLIENT_ID'] = "dummy_app_client_id"
os.environ['API_JWT_SECRET_NAME'] = "dummy_secret_name"
os.environ['API_JWT_SECRET'] = "a_super_secret_key_for_testing"
# --- End environment variable setup ---

# Add the project root to the path to allow for absolute imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from backend.app import crud
from backend.app.main import app
from backend.app.models import ProfileCreate
from backend.app.security import get_current_account_id


def _matches(condition, item) -> bool:
    """Evaluates the boto3 key conditions the CRUD layer builds (=, >=, AND)."""
    expression = condition.get_expression()
    operator = expression['operator']
    values = expression['values']
    if operator == 'AND':
        return all(_matches(value, item) for value in values)

    name = values[0].name
    if name not in item:
        return False
    if operator == '=':
        return item[name] == values[1]
    if operator == '>=':
        return item[name] >= values[1]
    raise NotImplementedError(f"Unsupported key condition operator: {operator}")


def _conditional_check_failed(operation):
    return ClientError(
        {'Error': {'Code': 'ConditionalCheckFailedException', 'Message': 'The conditional request failed'}},
        operation,
    )


def _condition_holds(expression, item, names, values) -> bool:
    """Evaluates the string conditions the CRUD layer writes: attribute_exists, = and >, joined by AND."""
    def operand(token):
        if token.startswith('#'):
            return item.get(names[token])
        return values[token]

    for term in expression.split(' AND '):
        if term.startswith('attribute_exists('):
            if names[term[len('attribute_exists('):-1]] not in item:
                return False
            continue
        left, operator, right = term.split(' ')
        left, right = operand(left), operand(right)
        if operator == '=' and left != right:
            return False
        if operator == '>' and (left is None or not left > right):
            return False
        if operator not in ('=', '>'):
            raise NotImplementedError(f"Unsupported condition operator: {operator}")
    return True


class FakeTable:
    """
    Minimal stand-in for a boto3 DynamoDB Table. Indexes are not modelled:
    a query on any index filters every item by the key condition.
    """
    def __init__(self, name, hash_key, range_key=None):
        self.name = name
        self.hash_key = hash_key
        self.range_key = range_key
        self.items = {}
        self.calls = []

    def _key(self, key):
        return (key[self.hash_key], key.get(self.range_key) if self.range_key else None)

    def put_item(self, Item, ConditionExpression=None, **kwargs):
        self.calls.append('put_item')
        key = self._key(Item)
        if ConditionExpression and ConditionExpression.startswith('attribute_not_exists') and key in self.items:
            raise _conditional_check_failed('PutItem')
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key, **kwargs):
        self.calls.append('get_item')
        item = self.items.get(self._key(Key))
        return {'Item': copy.deepcopy(item)} if item else {}

    def query(self, KeyConditionExpression, **kwargs):
        self.calls.append('query')
        return {'Items': [copy.deepcopy(i) for i in self.items.values() if _matches(KeyConditionExpression, i)]}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues,
                    ConditionExpression=None, **kwargs):
        self.calls.append('update_item')
        key = self._key(Key)
        current = self.items.get(key, {})
        if ConditionExpression and not _condition_holds(
                ConditionExpression, current, ExpressionAttributeNames, ExpressionAttributeValues):
            raise _conditional_check_failed('UpdateItem')

        item = self.items.setdefault(key, dict(Key))
        action, _, body = UpdateExpression.partition(' ')
        for clause in body.split(', '):
            if action == 'SET':
                name, value = clause.split(' = ')
                item[ExpressionAttributeNames[name]] = copy.deepcopy(ExpressionAttributeValues[value])
            elif action == 'ADD':
                name, value = clause.split(' ')
                attribute = ExpressionAttributeNames[name]
                item[attribute] = item.get(attribute, 0) + ExpressionAttributeValues[value]
            else:
                raise NotImplementedError(f"Unsupported update action: {action}")
        return {'Attributes': copy.deepcopy(item)}

    def delete_item(self, Key, **kwargs):
        self.calls.append('delete_item')
        self.items.pop(self._key(Key), None)
        return {}

    def scan(self, **kwargs):
        return {'Items': [copy.deepcopy(i) for i in self.items.values()]}


TABLE_KEYS = {
    'profiles': ('accountId', None),
    'links': ('linkId', None),
    'assignments': ('assignmentId', None),
    'devices': ('deviceId', None),
    'dosages': ('patientId', 'recordKey'),
    'reminders': ('reminderId', None),
    'alerts': ('alertId', None),
    'notes': ('noteId', None),
}


@pytest.fixture
def tables(monkeypatch):
    """Swaps every table in the CRUD module for an empty FakeTable."""
    fakes = {}
    for name, (hash_key, range_key) in TABLE_KEYS.items():
        fake = FakeTable(name, hash_key, range_key)
        monkeypatch.setattr(crud, f"{name}_table", fake)
        fakes[name] = fake
    monkeypatch.setattr(crud, "READ_RETRY_DELAY_SECONDS", 0)
    return fakes


@pytest.fixture
def make_profile(tables):
    def _make(role, full_name=None, account_id=None):
        account_id = account_id or f"acct-{uuid.uuid4().hex[:8]}"
        return crud.db_create_profile(account_id, ProfileCreate(full_name=full_name or f"Test {role}", role=role))
    return _make


@pytest.fixture
def patient(make_profile):
    return make_profile("patient", "Pat Patient")


@pytest.fixture
def caregiver(make_profile):
    return make_profile("caregiver", "Cara Giver")


@pytest.fixture
def doctor(make_profile):
    return make_profile("medical_team", "Dr. Med")


@pytest.fixture
def approved_link(patient, caregiver):
    link = crud.db_create_link(patient.id, caregiver.id)
    return crud.db_set_link_approval(link.id, True)


class ActingClient:
    """TestClient wrapper whose requests authenticate as a chosen profile."""
    def __init__(self, client, state):
        self._client = client
        self._state = state

    def acting_as(self, profile_or_account):
        self._state['account_id'] = getattr(profile_or_account, 'account_id', profile_or_account)
        return self._client


@pytest.fixture
def api(tables):
    state = {'account_id': None}
    # Bypass Cognito; the override returns whichever account the test selects
    app.dependency_overrides[get_current_account_id] = lambda: state['account_id']
    yield ActingClient(TestClient(app), state)
    app.dependency_overrides.clear()
