import json
from types import SimpleNamespace

import pytest

from contacts_import.config_loader import ApiConfig
from contacts_import.errors import RemoteAPIError
from contacts_import.models import CustomFieldDefinition, RemoteContact


class FakeContactsClient:
    def __init__(
        self,
        contacts=None,
        custom_fields=None,
        definitions=None,
        fail_lookup=(),
        fail_create=(),
        fail_update=(),
    ):
        self.contacts = dict(contacts or {})
        self.custom_fields = dict(custom_fields or {})
        self.definitions = list(definitions or [])
        self.fail_lookup = set(fail_lookup)
        self.fail_create = set(fail_create)
        self.fail_update = set(fail_update)
        self.calls = []

    def lookup_contact_by_phone(self, phone, organization_id=None):
        self.calls.append(("lookup", str(phone)))
        if str(phone) in self.fail_lookup:
            raise RemoteAPIError("Failed to check contact: HTTP 500", status_code=500)
        return self.contacts.get(str(phone))

    def list_contact_custom_fields(self, contact_id, organization_id=None):
        self.calls.append(("custom_fields", contact_id))
        return dict(self.custom_fields.get(contact_id, {}))

    def list_custom_field_definitions(self, organization_id=None):
        self.calls.append(("definitions",))
        return list(self.definitions)

    def create_contact(
        self, name, phone, custom_fields=(), country_code="BR", organization_id=None
    ):
        self.calls.append(("create", name, str(phone), list(custom_fields)))
        if name in self.fail_create:
            raise RemoteAPIError("Failed to create contact: HTTP 400", status_code=400)
        return RemoteContact(id=f"created-{len(self.calls)}", name=name, phone_number=str(phone))

    def update_contact_custom_field(self, contact_id, custom_field_id, value, organization_id=None):
        self.calls.append(("update", contact_id, custom_field_id, value))
        if (contact_id, custom_field_id) in self.fail_update:
            raise RemoteAPIError("Failed to update custom field: HTTP 422", status_code=422)
        return {}

    def calls_of(self, kind):
        return [call for call in self.calls if call[0] == kind]


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, responses=()):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, params=None, json=None, timeout=None):
        self.requests.append(
            SimpleNamespace(method=method, url=url, params=params, json=json, timeout=timeout)
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def api_config():
    return ApiConfig(
        base_url="https://api.example.test/api",
        token="secret-token",
        organization_id="Zk9RYvNhUpX9YKrM",
        timeout=5.0,
    )


@pytest.fixture
def cnpj_field():
    return CustomFieldDefinition(id="65f0c0ffee0000000000cafe", name="CNPJ", type="Text")


@pytest.fixture
def make_client():
    return FakeContactsClient


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def response():
    return FakeResponse
