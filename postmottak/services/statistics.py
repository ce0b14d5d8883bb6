"""
Statistics client. Records one entry per automatically handled message.
"""

import httpx

from postmottak.config import settings
from postmottak.core.logging import get_logger

log = get_logger(__name__)


class StatisticsClient:
    """HTTP client for the statistics service."""

    def __init__(
        self,
        base_url: str | None = None,
        key: str | None = None,
        app_name: str | None = None,
        app_version: str | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.statistics_base_url).rstrip("/")
        self.key = key or settings.statistics_key
        self.app_name = app_name or settings.app_name
        self.app_version = app_version or settings.app_version
        self._client = httpx.Client(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def insert(self, description: str, message_id: str, type: str, sender: str | None = None) -> None:
        """
        Send one statistics record.

        Failures are logged and never raised; statistics must not fail a flow.
        """
        if not self.enabled:
            log.debug("statistics_disabled", message_id=message_id)
            return

        payload = {
            "system": "postmottak-arkivering",
            "engine": f"{self.app_name} {self.app_version}",
            "company": "ORG",
            "department": "Dokumentasjon og politisk støtte",
            "description": description,
            "projectId": "11",
            "type": type,
            "sender": sender,
            "externalId": message_id,
        }

        try:
            response = self._client.post(
                f"{self.base_url}/stats",
                json=payload,
                headers={"x-functions-key": self.key},
            )
            if response.is_success:
                log.debug("statistics_inserted", message_id=message_id, type=type)
                return
            log.warning(
                "statistics_error",
                status=response.status_code,
                error=response.text[:500],
                message_id=message_id,
            )
        except httpx.HTTPError as e:
            log.error("statistics_request_error", error=str(e), message_id=message_id)
