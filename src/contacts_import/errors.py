"""Exceptions raised by the import and verification flows.

Input errors (``UploadError``, ``MappingError``) are raised before any remote
call is made. ``RemoteAPIError`` and ``InvalidCustomFieldError`` are per-call
failures that the pipelines catch at the row boundary. ``ConfigurationError``
is systemic and is never caught by the pipelines.
"""

from __future__ import annotations

from typing import Optional


class ContactsImportError(Exception):
    """Base exception for the package."""


class ConfigurationError(ContactsImportError):
    """Credentials or settings required to talk to the API are missing."""


class UploadError(ContactsImportError):
    """The uploaded file was rejected (missing, too large, wrong type, unparsable)."""


class MappingError(ContactsImportError):
    """The column mapping is incomplete or references an unknown field."""


class RemoteAPIError(ContactsImportError):
    """A call to the contacts API failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class InvalidCustomFieldError(ContactsImportError):
    """A custom field id does not have the shape the API issues."""


class ExportError(ContactsImportError):
    """The requested export format is not supported."""
