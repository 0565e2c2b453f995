"""
Contacts API client.

Thin wrapper around the uTalk-style contacts REST API. Every call carries the
bearer token and the ``organizationId`` query parameter. A 404 on the phone
lookup means "no such contact"; any other non-2xx response, or a transport
failure, raises ``RemoteAPIError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from .config_loader import ApiConfig
from .errors import ConfigurationError, InvalidCustomFieldError, RemoteAPIError
from .models import CustomFieldDefinition, Organization, RemoteContact

logger = logging.getLogger(__name__)

CREATE_TEXT_FIELD_MODEL = "CreateContactTextCustomFieldModel"
EDIT_TEXT_FIELD_MODEL = "EditContactTextCustomFieldModel"
CUSTOM_FIELD_ID_LENGTHS = (16, 24)


class ContactsClient:
    """
    Client for the contacts API.

    Provides:
        - phone lookups and custom field reads
        - contact creation
        - custom field updates on existing contacts
    """

    def __init__(self, api: ApiConfig, session: Optional[requests.Session] = None):
        if not api.token:
            raise ConfigurationError("API token is not configured")
        if not api.organization_id:
            raise ConfigurationError("Organization id is not configured")
        self.api = api
        self.base_url = api.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api.token}",
                "Accept": "application/json",
            }
        )

    @property
    def organization_id(self) -> str:
        return self.api.organization_id

    def _request(
        self,
        method: str,
        path: str,
        *,
        organization_id: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
        not_found_ok: bool = False,
        failure: str = "Request failed",
    ) -> Any:
        query = {"organizationId": organization_id or self.organization_id}
        query.update(params or {})
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, query)
        try:
            response = self.session.request(
                method, url, params=query, json=payload, timeout=self.api.timeout
            )
        except requests.RequestException as exc:
            raise RemoteAPIError(f"{failure}: {exc}") from exc

        if not_found_ok and response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            body = response.text
            logger.debug("API error %s on %s: %s", response.status_code, url, body)
            raise RemoteAPIError(
                f"{failure}: HTTP {response.status_code} {body}".strip(),
                status_code=response.status_code,
                response_body=body,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteAPIError(
                f"{failure}: invalid JSON response",
                status_code=response.status_code,
                response_body=response.text,
            ) from exc

    @staticmethod
    def _expect_object(data: Any, failure: str) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise RemoteAPIError(
                f"{failure}: unexpected response body", response_body=repr(data)
            )
        return data

    @staticmethod
    def _expect_list(data: Any, failure: str) -> List[Mapping[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(item, Mapping) for item in data):
            raise RemoteAPIError(
                f"{failure}: unexpected response body", response_body=repr(data)
            )
        return data

    def get_organizations(self) -> List[Organization]:
        # The token is scoped to a single organization.
        return [Organization(id=self.organization_id, name="My Organization")]

    def list_custom_field_definitions(
        self, organization_id: Optional[str] = None
    ) -> List[CustomFieldDefinition]:
        failure = "Failed to fetch custom fields"
        data = self._request(
            "GET",
            "/v1/custom-field-definitions/",
            organization_id=organization_id,
            failure=failure,
        )
        return [
            CustomFieldDefinition.from_mapping(item) for item in self._expect_list(data, failure)
        ]

    def list_contact_custom_fields(
        self, contact_id: str, organization_id: Optional[str] = None
    ) -> Dict[str, str]:
        failure = "Failed to fetch contact custom fields"
        data = self._request(
            "GET",
            f"/v1/contacts/{contact_id}/custom-fields/",
            organization_id=organization_id,
            failure=failure,
        )
        fields: Dict[str, str] = {}
        for item in self._expect_list(data, failure):
            definition_id = str(item.get("customFieldDefinitionId", "") or "")
            if definition_id:
                value = item.get("value")
                fields[definition_id] = "" if value is None else str(value)
        return fields

    def lookup_contact_by_phone(
        self, phone: str, organization_id: Optional[str] = None
    ) -> Optional[RemoteContact]:
        """Return the contact registered under ``phone`` (already normalized), or None."""
        failure = "Failed to check contact"
        data = self._request(
            "GET",
            "/v1/contacts/phone/",
            organization_id=organization_id,
            params={"phoneNumber": str(phone)},
            not_found_ok=True,
            failure=failure,
        )
        if data is None:
            return None
        return RemoteContact.from_mapping(self._expect_object(data, failure))

    def build_create_payload(
        self,
        name: str,
        phone: str,
        custom_fields: Sequence[Tuple[str, str]],
        country_code: str = "BR",
        organization_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        organization_id = organization_id or self.organization_id
        return {
            "Name": name,
            "PhoneNumber": str(phone),
            "OrganizationId": organization_id,
            "Address": {
                "AddressLine1": None,
                "AddressLine2": None,
                "City": None,
                "State": None,
                "ZipCode": None,
                "Country": country_code,
            },
            "Landline": None,
            "Gender": None,
            "Email": None,
            "ProfilePictureUrl": None,
            "Source": None,
            "CustomFields": [
                {
                    "_t": CREATE_TEXT_FIELD_MODEL,
                    "Value": value,
                    "CustomFieldDefinitionId": field_id,
                    "OrganizationId": organization_id,
                }
                for field_id, value in custom_fields
            ],
        }

    def create_contact(
        self,
        name: str,
        phone: str,
        custom_fields: Sequence[Tuple[str, str]] = (),
        country_code: str = "BR",
        organization_id: Optional[str] = None,
    ) -> RemoteContact:
        payload = self.build_create_payload(
            name, phone, custom_fields, country_code=country_code, organization_id=organization_id
        )
        data = self._request(
            "POST",
            "/v1/contacts",
            organization_id=organization_id,
            payload=payload,
            failure="Failed to create contact",
        )
        if not isinstance(data, Mapping) or not data:
            # The contact already exists remotely whatever the body holds.
            logger.debug("Create for %s returned no contact body: %r", phone, data)
            return RemoteContact(
                id="", name=name, phone_number=str(phone), custom_fields=dict(custom_fields)
            )
        return RemoteContact.from_mapping(data, custom_fields=dict(custom_fields))

    def update_contact_custom_field(
        self,
        contact_id: str,
        custom_field_id: str,
        value: str,
        organization_id: Optional[str] = None,
    ) -> Any:
        if not custom_field_id or len(custom_field_id) not in CUSTOM_FIELD_ID_LENGTHS:
            raise InvalidCustomFieldError(f"Invalid custom field id: {custom_field_id!r}")
        organization_id = organization_id or self.organization_id
        payload = {
            "_t": EDIT_TEXT_FIELD_MODEL,
            "Value": value,
            "OrganizationId": organization_id,
        }
        return self._request(
            "PUT",
            f"/v1/contacts/{contact_id}/custom-fields/{custom_field_id}/",
            organization_id=organization_id,
            payload=payload,
            failure="Failed to update custom field",
        )
