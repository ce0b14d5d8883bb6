"""
Blob persistence for FlowStatus.

Flows live under {namespace}/{type}/{messageId}-flowstatus.json. The queue
namespace holds flows waiting for a retry, the failed namespace keeps
escalated flows for audit.
"""

import json
from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel, ValidationError

from postmottak.config import settings
from postmottak.core.flow_status import FLOW_STATUS_SUFFIX, FlowStatus, blob_name
from postmottak.core.logging import get_logger
from postmottak.services.minio import MinIOClient

log = get_logger(__name__)

ResultModelResolver = Callable[[str], type[BaseModel] | None]


@dataclass
class UnreadableFlow:
    """A stored flow whose blob could not be turned back into a FlowStatus."""

    blob: str
    type: str
    message_id: str
    error: str


def parse_blob_name(namespace: str, name: str) -> tuple[str, str] | None:
    """(type, message id) from a flow blob name, None when it is not one."""
    prefix = f"{namespace}/"
    if not name.startswith(prefix) or not name.endswith(FLOW_STATUS_SUFFIX):
        return None
    email_type, _, rest = name[len(prefix):].partition("/")
    message_id = rest[: -len(FLOW_STATUS_SUFFIX)]
    if not email_type or not message_id:
        return None
    return email_type, message_id


class FlowStatusStore:
    """Save, load and delete FlowStatus blobs."""

    def __init__(
        self,
        blob: MinIOClient | None = None,
        result_model: ResultModelResolver | None = None,
        queue_prefix: str | None = None,
        failed_prefix: str | None = None,
    ):
        self.blob = blob or MinIOClient()
        self.result_model = result_model or (lambda _: None)
        self.queue_prefix = queue_prefix or settings.flow_status_queue_prefix
        self.failed_prefix = failed_prefix or settings.flow_status_failed_prefix

    def save(self, flow: FlowStatus, namespace: str) -> str:
        """Upload (overwrite) a flow. Returns the blob name."""
        name = flow.blob_name(namespace)
        self.blob.upload_text(name, flow.to_json())
        log.info(
            "flow_status_saved",
            blob=name,
            email_type=flow.type,
            run_count=flow.run_count,
            retry_after=flow.retry_after.isoformat() if flow.retry_after else None,
        )
        return name

    def load_all(self, namespace: str) -> tuple[list[FlowStatus], list[UnreadableFlow]]:
        """
        Load every flow in a namespace.

        Returns:
            The flows that could be read, and the blobs that could not. An
            unreadable blob still names its message, so the caller can keep
            that message away from a fresh classification.
        """
        flows: list[FlowStatus] = []
        unreadable: list[UnreadableFlow] = []
        for name in self.blob.list_objects(f"{namespace}/"):
            key = parse_blob_name(namespace, name)
            if key is None:
                continue
            text = self.blob.download_text(name)
            if text is None:
                continue
            try:
                data = json.loads(text)
                flows.append(FlowStatus.from_dict(data, self.result_model(data["type"])))
            except (ValueError, KeyError, TypeError, ValidationError) as e:
                log.warning("flow_status_unreadable", blob=name, error=str(e))
                unreadable.append(UnreadableFlow(blob=name, type=key[0], message_id=key[1], error=str(e)))

        log.info("flow_statuses_loaded", namespace=namespace, count=len(flows), unreadable=len(unreadable))
        return flows, unreadable

    def delete(self, flow: FlowStatus, namespace: str) -> None:
        name = flow.blob_name(namespace)
        deleted = self.blob.remove_prefix(name)
        if deleted:
            log.info("flow_status_deleted", blob=name)

    def quarantine(self, entry: UnreadableFlow) -> str:
        """Move an unreadable queued blob, content unchanged, to the failed namespace."""
        name = blob_name(self.failed_prefix, entry.type, entry.message_id)
        text = self.blob.download_text(entry.blob)
        if text is not None:
            self.blob.upload_text(name, text)
        self.blob.remove_prefix(entry.blob)
        log.warning("flow_status_quarantined", blob=entry.blob, moved_to=name)
        return name
