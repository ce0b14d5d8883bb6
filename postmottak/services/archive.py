"""
Archive API client (P360 via the SIF gateway).

Every archive operation goes through one RPC-style endpoint that takes a
{service, method, parameter} envelope. Responses are validated into the
typed records from core.records.
"""

import os
import time
from typing import Any

import requests

from postmottak.config import settings
from postmottak.core.errors import ArchiveError
from postmottak.core.logging import get_logger
from postmottak.core.records import (
    ArchiveCase,
    ArchiveDocument,
    ArchiveProject,
    Enterprise,
)
from postmottak.services.auth import TokenProvider

log = get_logger(__name__)

# Retry settings for intermittent 401 errors
MAX_RETRIES = 3
RETRY_DELAY = 0.5  # seconds

# Formats the archive converts to PDF/A on import
CONVERTIBLE_EXTENSIONS = frozenset({
    "PDF", "JPG", "EML", "JPEG", "XLSX", "XLS", "RTF", "MSG",
    "PPT", "PPTX", "DOCX", "DOC", "HTML", "HTM", "TIFF",
})

VALID_EXTENSIONS = frozenset({
    "UF", "DOC", "XLS", "PPT", "MPP", "RTF", "TIF", "PDF", "TXT", "HTM",
    "JPG", "MSG", "DWF", "ZIP", "DWG", "ODT", "ODS", "ODG", "XML", "DOCX",
    "EML", "MHT", "XLSX", "PPTX", "GIF", "ONE", "DOCM", "SOI", "MPEG-2", "MP3",
    "XLSB", "PPTM", "VSD", "VSDX", "XLSM", "SOS", "HTML", "PNG", "MOV", "PPSX",
    "WMV", "XPS", "JPEG", "TIFF", "MP4", "WAV", "PUB", "BMP", "IFC", "KOF",
    "VGT", "GSI", "GML", "CFB", "26", "2", "HIEC", "MD",
})


def file_extension(name: str | None) -> tuple[str, str]:
    """
    Map a file name to the archive's (format, version format).

    Unknown or missing extensions become "UF". Convertible formats get
    version format "P", everything else "A".
    """
    extension = os.path.splitext(name or "")[1].lstrip(".")
    if not extension:
        return "UF", "A"

    if extension.upper() not in VALID_EXTENSIONS:
        extension = "UF"

    return extension, "P" if extension.upper() in CONVERTIBLE_EXTENSIONS else "A"


class ArchiveClient:
    """Client for archive operations."""

    def __init__(
        self,
        base_url: str | None = None,
        scopes: list[str] | None = None,
        token_provider: TokenProvider | None = None,
        timeout: int | None = None,
    ):
        self.base_url = (base_url or settings.archive_base_url).rstrip("/")
        self.scopes = scopes or settings.archive_scopes
        self.token_provider = token_provider or TokenProvider()
        self.timeout = timeout or settings.archive_timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_provider.get_token(self.scopes)}"}

    def _post(self, route: str, payload: dict) -> Any:
        """Make POST request to the archive with retry for 401 errors."""
        for attempt in range(MAX_RETRIES):
            try:
                response = requests.post(
                    f"{self.base_url}/{route}",
                    json=payload,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return response.json() if response.content else None
            except requests.HTTPError as e:
                if e.response is not None and e.response.status_code == 401 and attempt < MAX_RETRIES - 1:
                    self.token_provider.invalidate(self.scopes)
                    time.sleep(RETRY_DELAY)
                    continue
                raise self._error(route, payload, e.response) from e
            except requests.RequestException as e:
                log.error("archive_request_error", route=route, error=str(e))
                raise ArchiveError(f"Failed to reach archive: {e}") from e

    def _error(self, route: str, payload: dict, response: requests.Response | None) -> ArchiveError:
        """Build ArchiveError from an error response body {message, data}."""
        if response is None:
            return ArchiveError(f"Archive {route} failed")

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            message = body.get("message") or response.reason or "Archive error"
            data = body.get("data")
        else:
            message = response.text[:500] or response.reason or "Archive error"
            data = None

        log.error(
            "archive_error",
            route=route,
            service=payload.get("service"),
            method=payload.get("method"),
            status=response.status_code,
            message=message,
        )
        return ArchiveError(message, response.status_code, data)

    def archive(self, service: str, method: str, parameter: dict) -> Any:
        """Call one archive service method."""
        return self._post("archive", {"service": service, "method": method, "parameter": parameter})

    def _list(self, service: str, method: str, parameter: dict) -> list[dict]:
        result = self.archive(service, method, parameter)
        if not isinstance(result, list):
            raise ArchiveError(f"{service}.{method} did not return a list")
        return [item for item in result if item]

    def _single(self, service: str, method: str, parameter: dict) -> dict:
        result = self.archive(service, method, parameter)
        if not isinstance(result, dict):
            raise ArchiveError(f"{service}.{method} returned no result")
        return result

    # Cases

    def get_cases(self, parameter: dict) -> list[ArchiveCase]:
        return [ArchiveCase.model_validate(item) for item in self._list("CaseService", "GetCases", parameter)]

    def create_case(self, parameter: dict) -> ArchiveCase:
        case = ArchiveCase.model_validate(self._single("CaseService", "CreateCase", parameter))
        log.info("archive_case_created", case_number=case.case_number, title=parameter.get("Title"))
        return case

    def update_case(self, parameter: dict) -> ArchiveCase:
        case = ArchiveCase.model_validate(self._single("CaseService", "UpdateCase", parameter))
        log.info("archive_case_updated", case_number=parameter.get("CaseNumber"), status=parameter.get("Status"))
        return case

    # Documents

    def get_documents(self, parameter: dict) -> list[ArchiveDocument]:
        return [
            ArchiveDocument.model_validate(item)
            for item in self._list("DocumentService", "GetDocuments", parameter)
        ]

    def create_document(self, parameter: dict) -> ArchiveDocument:
        document = ArchiveDocument.model_validate(self._single("DocumentService", "CreateDocument", parameter))
        log.info(
            "archive_document_created",
            document_number=document.document_number,
            case_number=parameter.get("CaseNumber"),
            files=len(parameter.get("Files", [])),
        )
        return document

    # Projects and contacts

    def get_projects(self, parameter: dict) -> list[ArchiveProject]:
        return [
            ArchiveProject.model_validate(item)
            for item in self._list("ProjectService", "GetProjects", parameter)
        ]

    def sync_enterprise(self, organization_number: str) -> Enterprise:
        """Create or update an enterprise contact from the central register."""
        result = self._post("syncEnterprise", {"orgnr": organization_number})
        if not isinstance(result, dict) or not result.get("enterprise"):
            raise ArchiveError(f"syncEnterprise returned no enterprise for {organization_number}")
        return Enterprise.model_validate(result["enterprise"])

    @staticmethod
    def file_extension(name: str | None) -> tuple[str, str]:
        return file_extension(name)
