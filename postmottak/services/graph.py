"""
Microsoft Graph client for the post-room mailbox.

All requests ask for immutable ids so a message keeps its id when it is
moved between folders.
"""

from typing import Any

import httpx

from postmottak.config import settings
from postmottak.core.errors import MailTransportError
from postmottak.core.logging import get_logger
from postmottak.core.models import MailAttachment, Message
from postmottak.services.auth import TokenProvider

log = get_logger(__name__)

FILE_ATTACHMENT = "#microsoft.graph.fileAttachment"


class GraphClient:
    """Mail operations against one mailbox."""

    def __init__(
        self,
        token_provider: TokenProvider | None = None,
        mailbox: str | None = None,
        base_url: str | None = None,
        scope: str | None = None,
        page_size: int | None = None,
        max_pages: int | None = None,
        timeout: float = 60.0,
    ):
        self.token_provider = token_provider or TokenProvider()
        self.mailbox = mailbox or settings.postmottak_upn
        self.base_url = (base_url or settings.graph_base_url).rstrip("/")
        self.scopes = [scope or settings.graph_scope]
        self.page_size = page_size or settings.mail_page_size
        self.max_pages = max_pages or settings.mail_max_pages
        self._client = httpx.Client(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token_provider.get_token(self.scopes)}",
            "Prefer": 'IdType="ImmutableId"',
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/users/{self.mailbox}{path}"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request and turn failures into MailTransportError."""
        try:
            response = self._client.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            log.error(
                "graph_http_error",
                method=method,
                url=url,
                status=e.response.status_code,
                error=e.response.text[:500],
            )
            raise MailTransportError(f"Graph {method} {url} failed", e.response.status_code)
        except httpx.RequestError as e:
            log.error("graph_request_error", method=method, url=url, error=str(e))
            raise MailTransportError(f"Failed to reach Graph: {e}")

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, self._url(path), **kwargs)
        return response.json() if response.content else None

    # Messages

    def list_messages(
        self,
        folder_id: str | None = None,
        filter: str | None = None,
        expand: list[str] | None = None,
        order_by: str = "receivedDateTime asc",
        top: int | None = None,
    ) -> list[Message]:
        """
        List messages in a folder, following @odata.nextLink.

        Args:
            folder_id: Mail folder id or well-known name (default: inbox)
            filter: OData $filter expression
            expand: Properties to $expand
            order_by: OData $orderby expression
            top: Page size

        Returns:
            Messages in listing order, at most max_pages pages.
        """
        folder = folder_id or settings.mail_folder_inbox_id
        params: dict[str, Any] = {"$orderby": order_by, "$top": top or self.page_size}
        if filter:
            params["$filter"] = filter
        if expand:
            params["$expand"] = ",".join(expand)

        url: str | None = self._url(f"/mailFolders/{folder}/messages")
        messages: list[Message] = []
        pages = 0

        while url and pages < self.max_pages:
            # nextLink already carries the query
            data = self._request("GET", url, params=params if pages == 0 else None).json()
            messages.extend(Message.from_graph(item) for item in data.get("value", []))
            url = data.get("@odata.nextLink")
            pages += 1

        if url:
            log.warning("message_listing_truncated", folder_id=folder, pages=pages)

        log.info("messages_listed", folder_id=folder, count=len(messages), filter=filter)
        return messages

    def get_message(self, message_id: str) -> Message:
        return Message.from_graph(self._json("GET", f"/messages/{message_id}"))

    def get_message_raw(self, message_id: str) -> bytes:
        """MIME content of a message (.eml)."""
        return self._request("GET", self._url(f"/messages/{message_id}/$value")).content

    def list_attachments(self, message_id: str) -> list[MailAttachment]:
        """File attachments of a message. Item and reference attachments are skipped."""
        data = self._json("GET", f"/messages/{message_id}/attachments")
        attachments = [
            MailAttachment(
                name=item.get("name") or "vedlegg",
                content_base64=item.get("contentBytes") or "",
                content_type=item.get("contentType") or "application/octet-stream",
            )
            for item in data.get("value", [])
            if item.get("@odata.type") == FILE_ATTACHMENT
        ]
        log.debug("attachments_listed", message_id=message_id, count=len(attachments))
        return attachments

    def move_message(self, message_id: str, destination_id: str) -> Message:
        data = self._json("POST", f"/messages/{message_id}/move", json={"destinationId": destination_id})
        log.info("message_moved", message_id=message_id, destination_id=destination_id)
        return Message.from_graph(data)

    def copy_message(self, message_id: str, destination_id: str) -> Message:
        data = self._json("POST", f"/messages/{message_id}/copy", json={"destinationId": destination_id})
        log.info("message_copied", message_id=message_id, destination_id=destination_id)
        return Message.from_graph(data)

    def patch_message(self, message_id: str, changes: dict[str, Any]) -> None:
        self._json("PATCH", f"/messages/{message_id}", json=changes)
        log.debug("message_patched", message_id=message_id, fields=list(changes))

    def set_body(self, message_id: str, html_content: str) -> None:
        """Replace the message body with HTML content."""
        self.patch_message(message_id, {"body": {"contentType": "html", "content": html_content}})

    def forward_message(self, message_id: str, recipients: list[str], comment: str = "") -> None:
        if not recipients:
            raise ValueError("Cannot forward a message without recipients")
        self._json(
            "POST",
            f"/messages/{message_id}/forward",
            json={
                "comment": comment,
                "toRecipients": [{"emailAddress": {"address": address}} for address in recipients],
            },
        )
        log.info("message_forwarded", message_id=message_id, recipients=recipients)

    def reply_message(self, message_id: str, comment: str) -> None:
        self._json("POST", f"/messages/{message_id}/reply", json={"comment": comment})
        log.info("message_replied", message_id=message_id)

    # Folders

    def list_folders(self) -> list[dict[str, Any]]:
        data = self._json("GET", "/mailFolders", params={"$top": 100})
        return [_folder(item) for item in data.get("value", [])]

    def list_child_folders(self, folder_id: str) -> list[dict[str, Any]]:
        data = self._json("GET", f"/mailFolders/{folder_id}/childFolders", params={"$top": 100})
        return [_folder(item) for item in data.get("value", [])]


def _folder(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": item.get("id"),
        "displayName": item.get("displayName"),
        "childFolderCount": item.get("childFolderCount", 0),
        "totalItemCount": item.get("totalItemCount", 0),
    }
