from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from typing import Optional, Sequence

from gmail_autoreply.models.email_message import EmailMessage
from gmail_autoreply.services.gmail_service import GmailService

LOGGER = logging.getLogger(__name__)
_BRACKETED_ADDRESS = re.compile(r"<([^<>]*)>")


class ReplyOutcome(str, enum.Enum):
    SENT = "sent"
    ALREADY_REPLIED = "already_replied"
    NO_RECIPIENT = "no_recipient"


@dataclass(slots=True)
class ReplyTemplate:
    subject: str
    body: str

    def render_subject(self, original_subject: str) -> str:
        subject = original_subject.strip()
        if subject.lower().startswith("re:"):
            subject = subject[3:].strip()
        return self.subject.replace("{subject}", subject).strip()


def has_replied(messages: Sequence[EmailMessage], label_id: str) -> bool:
    return any(message.has_label(label_id) for message in messages)


def extract_recipient(message: EmailMessage | None) -> Optional[str]:
    """Address from the first ``To`` header, without enclosing angle brackets.

    ``"John Doe <john@example.com>"`` gives ``"john@example.com"``, a bare
    address comes back unchanged and a missing header gives ``None``.
    """

    if message is None:
        return None
    value = message.header("To")
    if value is None:
        return None
    match = _BRACKETED_ADDRESS.search(value)
    if match:
        return match.group(1).strip()
    return value


def compose_reply(recipient: str, template: ReplyTemplate, original: EmailMessage | None = None) -> MimeMessage:
    reply = MimeMessage()
    reply["To"] = recipient
    reply["Subject"] = template.render_subject(original.subject if original else "")
    if original is not None:
        message_id = original.header("Message-ID")
        if message_id:
            references = original.header("References")
            reply["In-Reply-To"] = message_id
            reply["References"] = f"{references} {message_id}" if references else message_id
    reply.set_content(template.body)
    return reply


class Responder:
    """Send at most one auto-reply per thread and label it as handled."""

    def __init__(self, gmail: GmailService, label_id: str, template: ReplyTemplate):
        self._gmail = gmail
        self._label_id = label_id
        self._template = template

    def process_thread(self, thread_id: str) -> ReplyOutcome:
        thread = self._gmail.get_thread(thread_id)
        if has_replied(thread.messages, self._label_id):
            LOGGER.debug("Thread %s already carries the auto-reply label", thread_id)
            return ReplyOutcome.ALREADY_REPLIED

        first = thread.first_message
        recipient = extract_recipient(first)
        if not recipient:
            LOGGER.warning("Thread %s has no To header, not replying", thread_id)
            return ReplyOutcome.NO_RECIPIENT

        reply = compose_reply(recipient, self._template, first)
        sent = self._gmail.send_message(reply, thread_id=thread.id)
        try:
            self._gmail.apply_labels(sent["id"], [self._label_id])
        except Exception:
            LOGGER.error(
                "Reply %s was sent in thread %s but labelling it failed, add the %s label by hand",
                sent["id"],
                thread_id,
                self._label_id,
            )
            raise
        LOGGER.info("Auto-reply sent to %s (thread %s)", recipient, thread_id)
        return ReplyOutcome.SENT
