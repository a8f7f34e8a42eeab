"""Swappable record classifiers.

Which tickets count as "automated" and which calls count as "abandoned" are
business decisions that Zendesk data does not settle on its own. Services
take a classifier instance so the rule can be changed without touching the
counting code.
"""

from enum import Enum
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

# Subjects of tickets raised by integrations rather than customers
DEFAULT_AUTOMATED_SUBJECTS = (
    "Call with Caller",
    "Abandoned Call",
    "Buyer messages",
    "Return Shipment",
    "Action Required",
    "New Ticket in Partner",
    "RA Number",
    "Inquiry from Amazon",
    "Need for Replacement Part",
)

# Talk talk_time (seconds) above which an unassigned call still counts as answered
ANSWERED_TALK_TIME = 30


@runtime_checkable
class TicketClassifier(Protocol):
    """Decides whether a ticket was created by automation."""

    def is_automated(self, ticket: Mapping[str, Any]) -> bool:
        ...


class SubjectKeywordClassifier:
    """Automated if the subject contains any of the given phrases."""

    def __init__(self, phrases: Iterable[str] = DEFAULT_AUTOMATED_SUBJECTS, case_sensitive: bool = True):
        self.case_sensitive = case_sensitive
        self.phrases = tuple(p if case_sensitive else p.lower() for p in phrases)

    def is_automated(self, ticket: Mapping[str, Any]) -> bool:
        subject = ticket.get("subject") or ""
        if not self.case_sensitive:
            subject = subject.lower()
        return any(phrase in subject for phrase in self.phrases)


class TagClassifier:
    """Automated if the ticket carries any of the given tags."""

    def __init__(self, tags: Iterable[str]):
        self.tags = frozenset(tags)

    def is_automated(self, ticket: Mapping[str, Any]) -> bool:
        return bool(self.tags.intersection(ticket.get("tags") or ()))


class AnyOfClassifier:
    """Automated if any wrapped classifier says so."""

    def __init__(self, *classifiers: TicketClassifier):
        self.classifiers = classifiers

    def is_automated(self, ticket: Mapping[str, Any]) -> bool:
        return any(c.is_automated(ticket) for c in self.classifiers)


class CallOutcome(str, Enum):
    OUTBOUND = "outbound"
    ABANDONED = "abandoned"
    VOICEMAIL = "voicemail"
    ANSWERED = "answered"
    OTHER = "other"


@runtime_checkable
class CallClassifier(Protocol):
    """Assigns a Talk call record to one outcome."""

    def classify(self, call: Mapping[str, Any]) -> CallOutcome:
        ...

    def is_callback(self, call: Mapping[str, Any]) -> bool:
        ...

    def exceeded_wait_time(self, call: Mapping[str, Any]) -> bool:
        ...


class CompletionStatusClassifier:
    """Classifies calls from the Talk ``completion_status`` and agent fields.

    Order matters: direction first, then abandonment, then voicemail, then
    evidence that an agent picked up.
    """

    abandoned_statuses = frozenset({"abandoned", "abandoned_in_queue", "abandoned_in_voicemail"})
    voicemail_statuses = frozenset({"voicemail"})
    answered_statuses = frozenset({"completed", "answered"})

    def __init__(self, answered_talk_time: int = ANSWERED_TALK_TIME):
        self.answered_talk_time = answered_talk_time

    def classify(self, call: Mapping[str, Any]) -> CallOutcome:
        status = call.get("completion_status")
        if call.get("direction") == "outbound":
            return CallOutcome.OUTBOUND
        if status in self.abandoned_statuses:
            return CallOutcome.ABANDONED
        if status in self.voicemail_statuses or call.get("voicemail"):
            return CallOutcome.VOICEMAIL
        if call.get("agent_id") or (call.get("talk_time") or 0) > self.answered_talk_time:
            return CallOutcome.ANSWERED
        if status in self.answered_statuses:
            return CallOutcome.ANSWERED
        return CallOutcome.OTHER

    def is_callback(self, call: Mapping[str, Any]) -> bool:
        return bool(call.get("callback") or call.get("callback_source"))

    def exceeded_wait_time(self, call: Mapping[str, Any]) -> bool:
        return bool(call.get("exceeded_queue_wait_time"))
