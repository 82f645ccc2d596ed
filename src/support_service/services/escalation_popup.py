"""
Helpers that turn an escalation request into the popup shown to agents.

All functions are pure; they only look at the reason, the bot transcript
and the phone number sent with the escalation.
"""
import re
from typing import Optional

from support_service.domain.enums import ConversationPriority

UNKNOWN_CUSTOMER = "Unknown Customer"

_CRITICAL_KEYWORDS = ("critical", "urgent", "emergency")
_HIGH_KEYWORDS = ("high", "important", "priority")

_MESSAGE_INDICATORS = ("User:", "Bot:", "Agent:", "\n- ")
_USER_PREFIX = re.compile(r"^(user:|customer:)\s*", re.IGNORECASE)
_NON_USER_PREFIXES = ("bot:", "agent:")


def determine_priority(reason: Optional[str]) -> int:
    """
    Priority from keywords in the escalation reason.

    >>> determine_priority("Customer reports an URGENT outage")
    3
    >>> determine_priority("asked for a human")
    1
    """
    lowered = (reason or "").lower()
    if any(keyword in lowered for keyword in _CRITICAL_KEYWORDS):
        return ConversationPriority.CRITICAL
    if any(keyword in lowered for keyword in _HIGH_KEYWORDS):
        return ConversationPriority.HIGH
    return ConversationPriority.STANDARD


def extract_last_user_message(transcript: Optional[str]) -> Optional[str]:
    """
    Last line written by the customer.

    Lines are scanned from the end. A line counts as the customer's when it
    starts with ``User:`` or ``Customer:``, or when it is any other
    non-empty line that does not start with ``Bot:`` or ``Agent:``.
    """
    if not transcript:
        return None

    for raw_line in reversed(transcript.split("\n")):
        line = raw_line.strip()
        if not line:
            continue
        if line.lower().startswith(_NON_USER_PREFIXES):
            continue
        message = _USER_PREFIX.sub("", line, count=1).strip()
        return message or None
    return None


def count_transcript_messages(transcript: Optional[str]) -> int:
    """Number of speaker markers (``User:``, ``Bot:``, ``Agent:``, list items) in the transcript."""
    if not transcript:
        return 0
    return sum(transcript.count(indicator) for indicator in _MESSAGE_INDICATORS)


def truncate_transcript(transcript: Optional[str], max_length: int = 200) -> Optional[str]:
    if not transcript:
        return None
    if len(transcript) <= max_length:
        return transcript
    return transcript[:max_length] + "..."


def customer_name_from_phone(phone_number: Optional[str]) -> str:
    if not phone_number:
        return UNKNOWN_CUSTOMER
    return phone_number if phone_number.startswith("+") else f"+{phone_number}"
