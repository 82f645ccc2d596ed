"""
WhatsApp messages sent to the person who reported an issue.

Status changes and resolutions are pushed to the reporter's phone. A missing
phone number or a failed send is logged and never fails the update that
triggered it.
"""

import logging
from typing import Iterable, Optional

from support_service.domain.enums import IssueStatus
from support_service.domain.events import DomainEvent, IssueResolvedEvent, IssueStatusChangedEvent
from support_service.infrastructure.clients import WhatsAppApiClient
from support_service.infrastructure.database.models import Issue

logger = logging.getLogger(__name__)

_STATUS_EMOJI = {
    IssueStatus.IN_PROGRESS.value: "🔄",
    IssueStatus.RESOLVED.value: "✅",
    IssueStatus.CLOSED.value: "🔒",
    IssueStatus.ON_HOLD.value: "⏸️",
}
_DEFAULT_EMOJI = "📋"


def status_changed_message(issue: Issue, previous_status: str, new_status: str) -> str:
    emoji = _STATUS_EMOJI.get(new_status, _DEFAULT_EMOJI)
    return (
        f"{emoji} Status Update for your issue\n\n"
        f"📋 Reference: {issue.reference_number}\n"
        f"📝 Title: {issue.title}\n"
        f"📊 Status changed from: {previous_status} → {new_status}\n\n"
        "We'll continue to keep you updated on any changes."
    )


def resolved_message(issue: Issue, resolution_notes: Optional[str]) -> str:
    message = (
        "🎉 Great news! Your issue has been resolved\n\n"
        f"📋 Reference: {issue.reference_number}\n"
        f"📝 Title: {issue.title}\n"
    )
    if resolution_notes:
        message += f"\n💬 Resolution notes:\n{resolution_notes}\n"
    return message + (
        "\nIf you have any questions or if the issue persists, please don't hesitate "
        "to contact us again. Thank you for your patience!"
    )


class ReporterNotifier:
    def __init__(self, whatsapp: WhatsAppApiClient):
        self.whatsapp = whatsapp

    async def notify(self, issue: Issue, events: Iterable[DomainEvent]) -> int:
        """Send one message per status change or resolution event. Returns the number sent."""
        sent = 0
        for event in events:
            if isinstance(event, IssueStatusChangedEvent):
                text = status_changed_message(issue, event.previous_status, event.new_status)
            elif isinstance(event, IssueResolvedEvent):
                text = resolved_message(issue, event.resolution_notes)
            else:
                continue
            if await self._send(issue, event.name, text):
                sent += 1
        return sent

    async def _send(self, issue: Issue, event_name: str, text: str) -> bool:
        if not issue.reporter_phone:
            logger.warning(
                "No reporter phone on issue, skipping WhatsApp notification",
                extra={"issue_id": str(issue.id), "event": event_name},
            )
            return False

        try:
            delivered = await self.whatsapp.send_text_message(issue.reporter_phone, text)
        except Exception:
            logger.exception(
                "Error sending issue notification",
                extra={"issue_id": str(issue.id), "event": event_name},
            )
            return False

        if delivered:
            logger.info(
                "Issue notification sent",
                extra={"issue_id": str(issue.id), "reference_number": issue.reference_number, "event": event_name},
            )
        return delivered
