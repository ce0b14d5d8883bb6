"""
Archive processor.

Runs one poll cycle over the post-room inbox: messages with a queued
FlowStatus are resumed, all other messages are classified once. The
processor alone decides between success, retry and escalation, and it is
the only place that moves messages between folders. Once a handler has
succeeded its flow is marked handled, so a failure while filing the message
only repeats the filing.
"""

import html
import threading
import traceback
from datetime import datetime, timedelta, timezone
from typing import Callable

from postmottak.config import require_setting
from postmottak.core.errors import ArchiveRunInProgressError, EscalationRequired, UnknownEmailTypeError
from postmottak.core.flow_status import FlowStatus, next_retry_after
from postmottak.core.html import escalation_banner, success_banner, with_banner
from postmottak.core.logging import bind_context, clear_context, get_logger
from postmottak.core.models import (
    ArchiveRunSummary,
    HandledMessage,
    Message,
    UnknownMessage,
)
from postmottak.handlers import EmailTypeRegistry, get_email_type_class, result_model_for
from postmottak.handlers.base import BaseEmailType
from postmottak.processors.base import BaseProcessor
from postmottak.services import FlowStatusStore, ServiceContainer, StatisticsClient, build_services
from postmottak.services.flow_store import UnreadableFlow

log = get_logger(__name__)

# Shared by the scheduler job and the HTTP trigger
_run_lock = threading.Lock()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def body_html(message: Message) -> str:
    """Message body as HTML. Plain text bodies are escaped and keep their line breaks."""
    body = message.body_content or ""
    if message.body_content_type == "text":
        return html.escape(body).replace("\n", "<br />")
    return body


def email_type_title(name: str) -> str:
    """Banner title of a registered email type, the bare name otherwise."""
    try:
        return get_email_type_class(name).title
    except UnknownEmailTypeError:
        return name


class ArchiveProcessor(BaseProcessor):
    """
    Post-room archive processor.

    Classifies inbox messages into email types, runs their handlers and
    files every message in a folder matching its outcome.
    """

    def __init__(
        self,
        services: ServiceContainer | None = None,
        registry: EmailTypeRegistry | None = None,
        store: FlowStatusStore | None = None,
        statistics: StatisticsClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.services = services or build_services()
        self.registry = registry or EmailTypeRegistry(self.services)
        self.store = store or FlowStatusStore(result_model=result_model_for)
        self.statistics = statistics or StatisticsClient()
        self.clock = clock or utc_now

        settings = self.services.settings
        self.graph = self.services.graph
        self.agent = self.services.agent
        self.inbox_id = settings.mail_folder_inbox_id
        self.finished_id = require_setting(settings, "mail_folder_finished_id")
        self.arkivarer_id = require_setting(settings, "mail_folder_arkivarer_id")
        self.maybe_id = require_setting(settings, "mail_folder_maybe_id")
        self.unknown_id = require_setting(settings, "mail_folder_unknown_id")
        self.received_since_days = settings.mail_received_since_days
        self.retry_intervals = settings.retry_intervals_minutes

    def process(self) -> ArchiveRunSummary:
        """
        Run one archive cycle.

        Only one cycle runs at a time in this process. A call made while
        another cycle is running raises ArchiveRunInProgressError.

        Returns:
            ArchiveRunSummary for the cycle
        """
        if not _run_lock.acquire(blocking=False):
            log.warning("archive_run_already_running")
            raise ArchiveRunInProgressError("An archive run is already in progress")
        try:
            return self._process()
        finally:
            _run_lock.release()

    def _process(self) -> ArchiveRunSummary:
        summary = ArchiveRunSummary()
        stats = summary.stats
        now = self.clock()

        queued, unreadable = self._load_queue()
        messages = self.graph.list_messages(self.inbox_id, filter=self._received_filter(now))
        stats["fetched"] = len(messages)
        log.info("archive_run_start", messages=len(messages), queued=len(queued), unreadable=len(unreadable))

        for message in messages:
            try:
                bind_context(message_id=message.id)
                flow = queued.get(message.id)
                if flow is not None:
                    self._resume(flow, summary, now)
                elif message.id in unreadable:
                    self._escalate_unreadable(message, unreadable[message.id], summary)
                else:
                    self._classify(message, summary, now)
            except Exception as e:
                log.error("archive_message_error", error=str(e), exc_info=True)
                stats["errors"] += 1
                summary.unhandled_message_ids.append(message.id)
            finally:
                clear_context()

        log.info("archive_run_complete", **stats)
        return summary

    def _load_queue(self) -> tuple[dict[str, FlowStatus], dict[str, UnreadableFlow]]:
        flows, unreadable_flows = self.store.load_all(self.store.queue_prefix)

        queued: dict[str, FlowStatus] = {}
        for flow in flows:
            if flow.message.id in queued:
                log.warning(
                    "flow_status_duplicate",
                    message_id=flow.message.id,
                    kept=queued[flow.message.id].type,
                    ignored=flow.type,
                )
                continue
            queued[flow.message.id] = flow

        unreadable = {entry.message_id: entry for entry in unreadable_flows}
        return queued, unreadable

    def _received_filter(self, now: datetime) -> str | None:
        if not self.received_since_days:
            return None
        since = (now - timedelta(days=self.received_since_days)).strftime("%Y-%m-%dT%H:%M:%SZ")
        return f"receivedDateTime ge {since}"

    # Dispatch

    def _resume(self, flow: FlowStatus, summary: ArchiveRunSummary, now: datetime) -> None:
        """Continue a queued flow without classifying the message again."""
        if not flow.is_due(now):
            log.info("flow_status_not_due", email_type=flow.type, retry_after=flow.retry_after.isoformat())
            summary.stats["skipped"] += 1
            summary.unhandled_message_ids.append(flow.message.id)
            return

        summary.stats["resumed"] += 1
        log.info("flow_status_resumed", email_type=flow.type, run_count=flow.run_count)

        if flow.send_to_arkivarer:
            self._escalate(flow, email_type_title(flow.type), summary, now)
            return

        try:
            email_type = self.registry.create_email_type(flow.type)
        except UnknownEmailTypeError as e:
            flow.record_failure(e)
            flow.send_to_arkivarer = True
            self._escalate(flow, flow.type, summary, now)
            return

        if flow.handled_result is not None:
            log.info("flow_status_refiling", email_type=flow.type)
            self._finish(email_type, flow, summary)
            return

        self._run(email_type, flow, summary, now)

    def _classify(self, message: Message, summary: ArchiveRunSummary, now: datetime) -> None:
        classification = self.registry.classify(message)
        summary.stats["classified"] += 1

        if not classification.matched:
            self._file_unknown(classification.unknown, summary)
            return

        self._run(classification.email_type, classification.flow, summary, now)

    def _run(self, email_type: BaseEmailType, flow: FlowStatus, summary: ArchiveRunSummary, now: datetime) -> None:
        try:
            result_text = email_type.handle_message(flow)
        except Exception as e:
            flow.record_failure(e, traceback.format_exc())
            log.warning(
                "flow_failed",
                email_type=flow.type,
                run_count=flow.run_count,
                error=flow.error_message,
                error_type=type(e).__name__,
            )

            retry_after = None
            if not flow.send_to_arkivarer and not isinstance(e, EscalationRequired):
                retry_after = next_retry_after(flow.run_count, self.retry_intervals, now)

            if retry_after is None:
                self._escalate(flow, email_type.title, summary, now)
                return

            flow.retry_after = retry_after
            self.store.save(flow, self.store.queue_prefix)
            summary.stats["retry_scheduled"] += 1
            summary.unhandled_message_ids.append(flow.message.id)
            return

        flow.handled_result = result_text
        self._finish(email_type, flow, summary)

    # Terminal states

    def _finish(self, email_type: BaseEmailType, flow: FlowStatus, summary: ArchiveRunSummary) -> None:
        """Banner, file and forget a flow whose handler has succeeded."""
        message = flow.message
        result_text = flow.handled_result

        try:
            fun_fact = self.agent.fun_fact() if email_type.include_fun_fact else ""
            self.graph.set_body(
                message.id,
                with_banner(success_banner(email_type.title, result_text, fun_fact), body_html(message)),
            )
            self.graph.move_message(message.id, self.finished_id)
        except Exception:
            # Handled already: the next run only repeats the filing
            self.store.save(flow, self.store.queue_prefix)
            raise

        self._forget(flow)

        log.info("flow_succeeded", email_type=flow.type, result=result_text)
        self.statistics.insert(result_text, message.id, flow.type, sender=message.sender_email or None)

        summary.stats["succeeded"] += 1
        summary.handled_messages.append(HandledMessage(message_id=message.id, type=flow.type))

    def _escalate(self, flow: FlowStatus, title: str, summary: ArchiveRunSummary, now: datetime) -> None:
        """Hand a flow over to the archivists. No further automated attempts."""
        message = flow.message
        flow.send_to_arkivarer = True
        flow.retry_after = None
        flow.finished = now

        try:
            self.graph.set_body(
                message.id,
                with_banner(escalation_banner(title, flow.error_message, flow.run_count), body_html(message)),
            )
            self.graph.move_message(message.id, self.arkivarer_id)
        except Exception:
            # Keep the flagged flow queued so the next run escalates it again
            self.store.save(flow, self.store.queue_prefix)
            raise

        try:
            self.store.save(flow, self.store.failed_prefix)
        except Exception as e:
            log.error("flow_status_audit_error", email_type=flow.type, error=str(e))
        self._forget(flow)

        log.warning("flow_escalated", email_type=flow.type, run_count=flow.run_count, error=flow.error_message)
        summary.stats["escalated"] += 1
        summary.handled_messages.append(HandledMessage(message_id=message.id, type=flow.type, escalated=True))

    def _escalate_unreadable(self, message: Message, entry: UnreadableFlow, summary: ArchiveRunSummary) -> None:
        """Hand over a message whose queued flow cannot be read. It is never classified again."""
        error = f"Stored flow status could not be read: {entry.error}"

        self.graph.set_body(
            message.id,
            with_banner(escalation_banner(email_type_title(entry.type), error, 0), body_html(message)),
        )
        self.graph.move_message(message.id, self.arkivarer_id)

        try:
            self.store.quarantine(entry)
        except Exception as e:
            log.error("flow_status_quarantine_error", blob=entry.blob, error=str(e))

        log.warning("flow_escalated", email_type=entry.type, error=error)
        summary.stats["escalated"] += 1
        summary.handled_messages.append(HandledMessage(message_id=message.id, type=entry.type, escalated=True))

    def _forget(self, flow: FlowStatus) -> None:
        """Delete the queued blob of a flow that reached a terminal state."""
        try:
            self.store.delete(flow, self.store.queue_prefix)
        except Exception as e:
            # The message has left the inbox, so a leftover blob is never resumed
            log.error("flow_status_delete_error", email_type=flow.type, error=str(e))

    def _file_unknown(self, unknown: UnknownMessage, summary: ArchiveRunSummary) -> None:
        """Prepend the diagnostics and move to the maybe or no-match folder."""
        message = unknown.message
        destination = self.maybe_id if unknown.partial_match else self.unknown_id

        self.graph.set_body(message.id, f"{unknown.result}{body_html(message)}")
        self.graph.move_message(message.id, destination)

        log.info("message_unknown", partial_match=unknown.partial_match, folder=destination)
        summary.stats["unknown"] += 1
        summary.unhandled_message_ids.append(message.id)
